"""Sealed OAuth tokens for a user's linked music provider."""

from __future__ import annotations

import typing
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chord.db.base_class import Base

if typing.TYPE_CHECKING:  # pragma: no cover
    from chord.models.user import User

_AWARE_FIELDS = ("expires_at", "refreshed_at", "revoked_at")


class ProviderToken(Base):
    """One row per (user, provider); the token payload is never stored in clear."""

    __tablename__ = "provider_tokens"
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_provider_token_user"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    ciphertext: Mapped[str | None] = mapped_column(Text)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refreshed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    revoked_reason: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="provider_tokens")

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


@event.listens_for(ProviderToken, "load")
@event.listens_for(ProviderToken, "refresh")
def _restore_utc(target: ProviderToken, *_: typing.Any) -> None:
    # SQLite drops tzinfo on the way back.
    for field in _AWARE_FIELDS:
        value = getattr(target, field)
        if value is not None and value.tzinfo is None:
            setattr(target, field, value.replace(tzinfo=timezone.utc))
