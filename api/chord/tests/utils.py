"""Shared helpers for service and API tests."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.security import create_access_token
from chord.matching.embedding import EMBEDDING_DIMENSIONS
from chord.models.match import Match, MatchDayClaim, make_pair_key
from chord.models.user import User, UserTasteProfile

# Roughly central Bengaluru; 0.01 degrees of latitude is about 1.1 km.
BASE_LAT = 12.97
BASE_LNG = 77.59


def unit_embedding(index: int = 0, *, weight: float = 1.0) -> list[float]:
    vector = [0.0] * EMBEDDING_DIMENSIONS
    vector[index] = weight
    return vector


async def create_user(
    session: AsyncSession,
    *,
    user_id: uuid.UUID | None = None,
    latitude: float | None = BASE_LAT,
    longitude: float | None = BASE_LNG,
    embedding: list[float] | None = None,
    display_name: str | None = None,
    is_active: bool = True,
    last_active_at: datetime | None = None,
    top_artists: list[dict] | None = None,
    top_genres: list[dict] | None = None,
) -> User:
    """Insert a user and, when ``embedding`` is given, a taste profile."""
    user_id = user_id or uuid.uuid4()
    user = User(
        id=user_id,
        display_name=display_name or f"Listener {str(user_id)[:4]}",
        latitude=latitude,
        longitude=longitude,
        is_active=is_active,
        last_active_at=last_active_at or datetime.now(timezone.utc),
    )
    session.add(user)
    if embedding is not None:
        session.add(
            UserTasteProfile(
                user_id=user_id,
                embedding=embedding,
                top_artists=top_artists or [],
                top_genres=top_genres or [],
                top_tracks=[],
            )
        )
    await session.commit()
    await session.refresh(user)
    return user


async def create_match(
    session: AsyncSession,
    first: User,
    second: User,
    *,
    match_date: date | None = None,
    is_active: bool = True,
) -> Match:
    """Insert a match plus its day claims the way the matching run does."""
    match_date = match_date or datetime.now(timezone.utc).date()
    match = Match(
        id=uuid.uuid4(),
        user1_id=first.id,
        user2_id=second.id,
        pair_key=make_pair_key(first.id, second.id),
        created_date=match_date,
        match_score=0.8,
        music_similarity=0.9,
        distance_km=2.5,
        is_active=is_active,
    )
    session.add(match)
    session.add_all(
        [
            MatchDayClaim(user_id=first.id, match_date=match_date, match_id=match.id),
            MatchDayClaim(user_id=second.id, match_date=match_date, match_id=match.id),
        ]
    )
    await session.commit()
    await session.refresh(match)
    return match


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}
