"""Listening-history sync into the stored taste profile."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.config import settings
from chord.core.errors import NotFoundError
from chord.matching.embedding import build_profile
from chord.models.user import UserTasteProfile
from chord.services import spotify_service

logger = logging.getLogger("chord.services.music_profile")


class ListeningHistoryProvider(Protocol):
    async def get_top_tracks(self, *, limit: int, time_range: str) -> list[dict[str, Any]]: ...

    async def get_top_artists(self, *, limit: int, time_range: str) -> list[dict[str, Any]]: ...

    async def get_audio_features(self, track_ids: Sequence[str]) -> list[dict[str, Any]]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_profile(session: AsyncSession, user_id: uuid.UUID) -> UserTasteProfile | None:
    return await session.scalar(select(UserTasteProfile).where(UserTasteProfile.user_id == user_id))


async def get_music_taste(session: AsyncSession, user_id: uuid.UUID) -> UserTasteProfile:
    profile = await get_profile(session, user_id)
    if not profile:
        raise NotFoundError("Music taste not found")
    return profile


async def sync_listening_history(
    session: AsyncSession, user_id: uuid.UUID, provider: ListeningHistoryProvider
) -> UserTasteProfile:
    """Rebuild the user's taste profile from fresh listening history.

    The previous profile is replaced wholesale. Provider errors propagate and
    leave the stored profile untouched.
    """
    tracks = await provider.get_top_tracks(limit=settings.spotify_top_limit, time_range=settings.spotify_time_range)
    artists = await provider.get_top_artists(limit=settings.spotify_top_limit, time_range=settings.spotify_time_range)
    track_ids = [track["id"] for track in tracks if track.get("id")]
    audio_features = await provider.get_audio_features(track_ids) if track_ids else []
    data = build_profile(tracks, artists, audio_features)

    now = _utcnow()
    profile = await get_profile(session, user_id)
    if profile:
        profile.embedding = data.embedding
        profile.top_artists = data.top_artists
        profile.top_genres = data.top_genres
        profile.top_tracks = data.top_tracks
        profile.last_synced_at = now
    else:
        profile = UserTasteProfile(
            user_id=user_id,
            embedding=data.embedding,
            top_artists=data.top_artists,
            top_genres=data.top_genres,
            top_tracks=data.top_tracks,
            last_synced_at=now,
        )
        session.add(profile)
    await session.commit()
    await session.refresh(profile)
    logger.info(
        "Synced listening history for user %s (%d tracks, %d artists, %d with audio features)",
        user_id,
        len(tracks),
        len(artists),
        len(audio_features),
    )
    return profile


async def get_or_sync_profile(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    force_refresh: bool = False,
    provider: ListeningHistoryProvider | None = None,
) -> UserTasteProfile:
    """Return the cached profile while fresh, otherwise sync it."""
    profile = await get_profile(session, user_id)
    refresh_hours = settings.taste_profile_refresh_hours
    if profile and not force_refresh:
        if refresh_hours <= 0:
            return profile
        synced_at = _as_utc(profile.last_synced_at)
        if synced_at and synced_at >= _utcnow() - timedelta(hours=refresh_hours):
            return profile
    if provider is None:
        provider = await spotify_service.listening_history_for(session, user_id=user_id)
    return await sync_listening_history(session, user_id, provider)


def sync_summary(profile: UserTasteProfile) -> dict[str, Any]:
    synced_at = _as_utc(profile.last_synced_at)
    return {
        "status": "synced",
        "user_id": str(profile.user_id),
        "last_synced_at": synced_at.isoformat() if synced_at else None,
        "top_genres": [genre.get("name") for genre in profile.top_genres or []],
    }
