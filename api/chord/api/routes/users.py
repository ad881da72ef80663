"""Endpoints for the caller's profile, location, and music taste."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chord.api.deps import get_current_user, get_db
from chord.models.user import User
from chord.schema.taste_profile import MusicTasteRead, SyncResult
from chord.schema.user import LocationRead, LocationUpdate, UserRead, UserUpdate
from chord.services import music_profile_service, user_service
from chord.services.task_queue import JobFailedError, task_queue
from chord.utils.http import ExternalAPIError

router = APIRouter()


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    """Return the current authenticated user."""
    return current_user


@router.put("/me", response_model=UserRead)
async def update_current_user(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> User:
    return await user_service.update_profile(session, current_user, payload.model_dump(exclude_unset=True))


@router.post("/me/location", response_model=LocationRead)
async def update_location(
    payload: LocationUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> LocationRead:
    """Store a rounded location; the response echoes what was actually kept."""
    user = await user_service.update_location(session, current_user, payload.latitude, payload.longitude)
    return LocationRead(
        latitude=user.latitude,
        longitude=user.longitude,
        last_location_update=user.last_location_update,
    )


@router.get("/me/music-taste", response_model=MusicTasteRead)
async def read_music_taste(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return await music_profile_service.get_music_taste(session, current_user.id)


@router.post("/me/sync-spotify", response_model=SyncResult)
async def sync_spotify(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Rebuild the caller's taste profile from Spotify now."""

    async def _sync_inline() -> dict:
        profile = await music_profile_service.get_or_sync_profile(session, current_user.id, force_refresh=True)
        return music_profile_service.sync_summary(profile)

    try:
        return await task_queue.enqueue_profile_sync(user_id=current_user.id, fallback=_sync_inline)
    except (ExternalAPIError, JobFailedError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Spotify request failed") from exc
