"""User model and the music taste profile derived from listening history."""

from __future__ import annotations

import typing
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chord.db.base_class import Base

JSON_COMPATIBLE = JSON().with_variant(JSONB, "postgresql")

if typing.TYPE_CHECKING:  # pragma: no cover
    from chord.models.provider_token import ProviderToken


class User(Base):
    """Primary user account record.

    Location is stored pre-rounded to two decimals (~1 km); exact coordinates
    never reach the database.
    """
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_lat_lng", "latitude", "longitude"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    spotify_id: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    display_name: Mapped[str | None] = mapped_column(String(255))
    bio: Mapped[str | None] = mapped_column(String(50))
    profile_photo_url: Mapped[str | None] = mapped_column(String(1024))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    last_location_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_active_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    taste_profile: Mapped["UserTasteProfile | None"] = relationship(
        back_populates="user", cascade="all, delete-orphan", uselist=False
    )
    provider_tokens: Mapped[list["ProviderToken"]] = relationship(back_populates="user", cascade="all, delete-orphan")

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class UserTasteProfile(Base):
    """Fixed-size taste embedding plus display summaries, replaced wholesale on each sync."""
    __tablename__ = "user_taste_profiles"
    __table_args__ = (UniqueConstraint("user_id", name="uq_user_taste_profile"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"))
    embedding: Mapped[list] = mapped_column(JSON_COMPATIBLE, default=list)
    top_artists: Mapped[list] = mapped_column(JSON_COMPATIBLE, default=list)
    top_genres: Mapped[list] = mapped_column(JSON_COMPATIBLE, default=list)
    top_tracks: Mapped[list] = mapped_column(JSON_COMPATIBLE, default=list)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped["User"] = relationship(back_populates="taste_profile")
