"""User request/response schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from chord.schema.base import ORMModel

MAX_BIO_LENGTH = 50


class UserRead(ORMModel):
    """The caller's own profile, including their stored (rounded) location."""
    id: UUID
    spotify_id: str | None = None
    email: EmailStr | None = None
    display_name: str | None = None
    bio: str | None = None
    profile_photo_url: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    last_location_update: datetime | None = None
    created_at: datetime


class UserUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=MAX_BIO_LENGTH)
    profile_photo_url: str | None = Field(default=None, max_length=1024)


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class LocationRead(BaseModel):
    latitude: float
    longitude: float
    last_location_update: datetime | None = None
