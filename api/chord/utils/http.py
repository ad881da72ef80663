"""Outbound JSON requests with bounded retries."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

logger = logging.getLogger("chord.utils.http")

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class ExternalAPIError(Exception):
    """A third-party API could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientAPIError(ExternalAPIError):
    pass


async def fetch_json(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    method: str = "GET",
    data: dict[str, Any] | None = None,
    attempts: int = 3,
    timeout: float = 15,
) -> dict[str, Any]:
    """Issue a request and decode JSON, retrying throttling and server errors."""
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=1, max=8),
        retry=retry_if_exception_type((httpx.TransportError, TransientAPIError)),
        reraise=True,
    ):
        with attempt:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(method, url, headers=headers, params=params, data=data)
            if response.status_code in RETRYABLE_STATUS_CODES:
                logger.warning("Retryable %s from %s", response.status_code, url)
                raise TransientAPIError(f"Server error {response.status_code}", status_code=response.status_code)
            if response.status_code >= 400:
                raise ExternalAPIError(f"Request failed with {response.status_code}", status_code=response.status_code)
            return response.json()
    raise ExternalAPIError("Unreachable")
