from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from chord.db.session import async_session
from chord.services import music_profile_service

logger = logging.getLogger("chord.jobs.sync")


def sync_taste_profile_job(*, user_id: str, force_refresh: bool = True) -> dict[str, Any]:
    """Rebuild one user's taste profile from their Spotify listening history."""

    async def _run() -> dict[str, Any]:
        async with async_session() as session:
            profile = await music_profile_service.get_or_sync_profile(
                session, uuid.UUID(user_id), force_refresh=force_refresh
            )
            return music_profile_service.sync_summary(profile)

    summary = asyncio.run(_run())
    logger.info("Taste profile sync complete for user %s", user_id)
    return summary
