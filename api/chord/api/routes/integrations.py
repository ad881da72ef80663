"""Spotify account linking endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chord.api.deps import get_current_user, get_db
from chord.models.user import User
from chord.schema.integrations import SpotifyAuthorizeRead, SpotifyLinkRead
from chord.services import music_profile_service, spotify_service
from chord.services.task_queue import JobFailedError, task_queue
from chord.utils.http import ExternalAPIError

logger = logging.getLogger("chord.api.integrations")

router = APIRouter()


@router.get("/spotify/authorize", response_model=SpotifyAuthorizeRead)
async def spotify_authorize(
    current_user: User = Depends(get_current_user),
) -> SpotifyAuthorizeRead:
    """Return a Spotify OAuth authorization URL."""
    state = spotify_service.build_state_token(current_user.id)
    return SpotifyAuthorizeRead(authorize_url=spotify_service.build_authorize_url(state), state=state)


@router.get("/spotify/callback", response_model=SpotifyLinkRead)
async def spotify_callback(
    code: str,
    state: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SpotifyLinkRead:
    """Link the Spotify account, then build the first taste profile."""
    state_user_id = spotify_service.decode_state_token(state)
    if state_user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Spotify state mismatch")
    try:
        user = await spotify_service.link_account(session, user=current_user, code=code)
    except ExternalAPIError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Spotify request failed") from exc

    async def _sync_inline() -> dict:
        profile = await music_profile_service.get_or_sync_profile(session, user.id, force_refresh=True)
        return music_profile_service.sync_summary(profile)

    synced = True
    try:
        await task_queue.enqueue_profile_sync(user_id=user.id, fallback=_sync_inline)
    except (ExternalAPIError, JobFailedError) as exc:
        # Linking succeeded; the profile can be rebuilt later via sync-spotify.
        logger.warning("Initial taste sync failed for user %s: %s", user.id, exc)
        synced = False
    return SpotifyLinkRead(status="connected", spotify_id=user.spotify_id, synced=synced)
