from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.errors import ValidationError
from chord.models.user import User

logger = logging.getLogger("chord.services.user")

LOCATION_PRECISION = 2
ACTIVITY_WRITE_INTERVAL = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_user_by_id(session: AsyncSession, user_id: str | uuid.UUID) -> User | None:
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        return None
    result = await session.execute(select(User).where(User.id == user_uuid))
    return result.scalar_one_or_none()


async def update_profile(session: AsyncSession, user: User, changes: dict[str, Any]) -> User:
    for field in ("display_name", "bio", "profile_photo_url"):
        if field in changes:
            setattr(user, field, changes[field])
    await session.commit()
    await session.refresh(user)
    return user


def round_coordinate(value: float) -> float:
    return round(value, LOCATION_PRECISION)


async def update_location(session: AsyncSession, user: User, latitude: float, longitude: float) -> User:
    """Store a coarse (two-decimal, roughly 1 km) location; exact values are discarded."""
    if any(math.isnan(value) for value in (latitude, longitude)):
        raise ValidationError("Invalid coordinates")
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationError("Invalid coordinates")
    user.latitude = round_coordinate(latitude)
    user.longitude = round_coordinate(longitude)
    user.last_location_update = _utcnow()
    await session.commit()
    await session.refresh(user)
    return user


async def touch_activity(session: AsyncSession, user: User) -> None:
    """Record that the user was just active, at most once per few minutes."""
    now = _utcnow()
    last = user.last_active_at
    if last is not None and last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    if last is not None and now - last < ACTIVITY_WRITE_INTERVAL:
        return
    user.last_active_at = now
    await session.commit()
