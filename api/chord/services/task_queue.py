"""Hand work to RQ workers, or run it in-process when Redis is not around.

Profile syncs are request-scoped: the API enqueues the job and blocks (in a
worker thread) until the result lands. If Redis is unreachable or the worker
does not answer in time, the same work runs inline through the caller's
fallback coroutine.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Retry
from rq.results import Result

from chord.core.config import settings

logger = logging.getLogger("chord.services.task_queue")

# Provider hiccups get a couple of spaced retries before the job is marked failed.
DEFAULT_RETRY = Retry(max=2, interval=[10, 30])
PROFILE_SYNC_TIMEOUT_SECONDS = 120

InlineFallback = Callable[[], Awaitable[Any]]


class JobFailedError(RuntimeError):
    """The worker ran the job and it raised."""


def _connect() -> Redis | None:
    if settings.environment.lower() == "test":
        logger.info("Task queue disabled in test environment")
        return None
    try:
        connection = Redis.from_url(settings.redis_url)
        connection.ping()
    except RedisError as exc:  # pragma: no cover - needs a broken redis
        logger.warning("Redis unavailable; jobs will run inline: %s", exc)
        return None
    return connection


class TaskQueue:
    def __init__(self, connection: Redis | None = None, *, connect: bool = True) -> None:
        self.queue_names: list[str] = list(settings.worker_queue_names or ["default"])
        if connection is None and connect:
            connection = _connect()
        self._connection = connection
        if self._connection is not None:
            logger.info("Task queue ready (queues: %s)", ", ".join(self.queue_names))

    @property
    def enabled(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> Redis | None:
        return self._connection

    def queue_for(self, preferred: str) -> str:
        """``preferred`` if a worker listens on it, otherwise the first configured queue."""
        return preferred if preferred in self.queue_names else self.queue_names[0]

    def _wait_for(self, queue_name: str, func: Callable[..., Any], timeout: int, description: str, kwargs: dict) -> Any:
        job = Queue(queue_name, connection=self._connection).enqueue(
            func,
            kwargs=kwargs,
            job_timeout=timeout,
            description=description,
            retry=DEFAULT_RETRY,
        )
        result = job.latest_result(timeout=timeout)
        if result is None:
            raise TimeoutError(f"Job {job.id} did not finish within {timeout}s")
        if result.type != Result.Type.SUCCESSFUL:
            raise JobFailedError(f"Job {job.id} failed: {result.exc_string}")
        return result.return_value

    async def run(
        self,
        func: Callable[..., Any],
        *,
        queue: str,
        fallback: InlineFallback,
        timeout: int = 60,
        description: str = "",
        **kwargs: Any,
    ) -> Any:
        """Run ``func`` on a worker and return its result, or await ``fallback`` instead."""
        if not self.enabled:
            return await fallback()
        try:
            return await asyncio.to_thread(self._wait_for, self.queue_for(queue), func, timeout, description, kwargs)
        except (RedisError, TimeoutError) as exc:
            logger.warning("Queue unavailable for %s, running inline: %s", description or func.__name__, exc)
            return await fallback()

    async def enqueue_profile_sync(
        self, *, user_id: uuid.UUID, fallback: InlineFallback, force_refresh: bool = True
    ) -> dict[str, Any]:
        """Rebuild a user's taste profile on the ``sync`` queue."""
        from chord.jobs.sync import sync_taste_profile_job

        return await self.run(
            sync_taste_profile_job,
            queue="sync",
            fallback=fallback,
            timeout=PROFILE_SYNC_TIMEOUT_SECONDS,
            description=f"sync:spotify:{user_id}",
            user_id=str(user_id),
            force_refresh=force_refresh,
        )


task_queue = TaskQueue()
