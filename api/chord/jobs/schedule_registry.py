from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from rq_scheduler import Scheduler

from chord.core.config import settings
from chord.jobs.matching import run_daily_matching_job
from chord.services.task_queue import task_queue

logger = logging.getLogger("chord.jobs.schedule_registry")

DAY_SECONDS = 86400


def next_run_time(now: datetime | None = None) -> datetime:
    """Next daily matching slot as a naive UTC datetime (what rq-scheduler expects)."""
    current = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).replace(tzinfo=None)
    slot = current.replace(
        hour=settings.matching_run_hour_utc,
        minute=settings.matching_run_minute_utc,
        second=0,
        microsecond=0,
    )
    if slot <= current:
        slot += timedelta(days=1)
    return slot


def _schedule_entries() -> list[dict]:
    partitions = settings.matching_partitions
    return [
        {
            "id": f"matching:daily:{index}-of-{partitions}",
            "func": run_daily_matching_job,
            "kwargs": {"partition_index": index, "partition_count": partitions},
            "interval": DAY_SECONDS,
            "repeat": None,
            "queue_name": task_queue.queue_for("matching"),
        }
        for index in range(partitions)
    ]


def ensure_schedules() -> None:
    """Idempotently register the daily matching jobs with rq-scheduler."""
    if settings.environment.lower() == "test":
        return
    if not task_queue.connection:
        logger.info("Skipping scheduler bootstrap; queue connection is unavailable")
        return
    scheduler = Scheduler(connection=task_queue.connection, queue_name=task_queue.queue_names[0])
    first_run = next_run_time()
    for entry in _schedule_entries():
        if entry["id"] in scheduler:
            continue
        scheduler.schedule(
            scheduled_time=first_run,
            func=entry["func"],
            kwargs=entry["kwargs"],
            interval=entry["interval"],
            repeat=entry["repeat"],
            id=entry["id"],
            queue_name=entry["queue_name"],
            timeout=int(timedelta(hours=2).total_seconds()),
            result_ttl=int(timedelta(days=2).total_seconds()),
        )
        logger.info("Scheduled %s daily from %s UTC on queue %s", entry["id"], first_run, entry["queue_name"])
