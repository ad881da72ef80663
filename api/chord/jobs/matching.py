"""Daily matching job entrypoints."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

from chord.core.config import settings
from chord.db.session import async_session
from chord.services import matching_service

logger = logging.getLogger("chord.jobs.matching")


def run_daily_matching_job(
    *,
    partition_index: int = 0,
    partition_count: int | None = None,
    match_date: str | None = None,
) -> dict[str, Any]:
    """RQ-friendly daily sweep over one partition of the eligible population."""

    async def _run() -> matching_service.MatchingRunSummary:
        async with async_session() as session:
            return await matching_service.run_daily_matching(
                session,
                match_date=date.fromisoformat(match_date) if match_date else None,
                partition_index=partition_index,
                partition_count=partition_count or settings.matching_partitions,
            )

    summary = asyncio.run(_run())
    logger.info(
        "Matching job complete for partition %d: %d matches, %d failures",
        partition_index,
        summary.matches_created,
        summary.failures,
    )
    return summary.as_dict()
