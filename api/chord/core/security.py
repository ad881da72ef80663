"""Signed JWTs: access tokens from the auth service and short-lived OAuth state."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from .config import settings

ACCESS_TOKEN_TYPE = "access"
SPOTIFY_STATE_TOKEN_TYPE = "spotify_state"


def create_token(subject: str, expires_delta: timedelta, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str) -> str:
    """Mint an access token the way the auth service does; used by tooling and tests."""
    delta = timedelta(minutes=settings.access_token_expires_minutes)
    return create_token(subject, delta, ACCESS_TOKEN_TYPE)


def decode_token(token: str, *, expected_type: str | None = None) -> dict[str, Any] | None:
    """Return the payload of a valid token, or None if it is invalid, expired, or of another type."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if expected_type is not None and payload.get("type") != expected_type:
        return None
    if not payload.get("sub"):
        return None
    return payload
