"""Daily match records, per-day claims, and block/report relations.

Invariants:
- A user holds at most one MatchDayClaim per calendar day; the claim rows are
  written in the same transaction as the Match they point at.
- A pair of users has at most one Match per calendar day, in either order.
- Match rows are never deleted; blocking only flips ``is_active``.
"""

from __future__ import annotations

import enum
import typing
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chord.db.base_class import Base

if typing.TYPE_CHECKING:  # pragma: no cover
    from chord.models.user import User


class MatchState(str, enum.Enum):
    ACTIVE_HIDDEN = "active_hidden"
    REVEAL_PENDING = "reveal_pending"
    REVEALED = "revealed"
    BLOCKED = "blocked"


def make_pair_key(first: uuid.UUID, second: uuid.UUID) -> str:
    """Return an order-independent key for a user pair."""
    low, high = sorted((str(first), str(second)))
    return f"{low}:{high}"


class Match(Base):
    """One pairing produced by the daily matching run."""
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("pair_key", "created_date", name="uq_match_pair_date"),
        CheckConstraint("user1_id <> user2_id", name="ck_match_distinct_users"),
        CheckConstraint("music_similarity >= 0 AND music_similarity <= 1", name="ck_match_similarity_range"),
        CheckConstraint("distance_km >= 0", name="ck_match_distance_nonnegative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user1_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user2_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pair_key: Mapped[str] = mapped_column(String(80), nullable=False)
    created_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    match_score: Mapped[float] = mapped_column(Float, nullable=False)
    music_similarity: Mapped[float] = mapped_column(Float, nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    reveal_requested_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    reveal_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    identities_revealed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    user1: Mapped["User"] = relationship(foreign_keys=[user1_id])
    user2: Mapped["User"] = relationship(foreign_keys=[user2_id])

    def has_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user_id(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.user2_id if self.user1_id == user_id else self.user1_id


class MatchDayClaim(Base):
    """Reservation of a user's single match slot for a calendar day."""
    __tablename__ = "match_day_claims"
    __table_args__ = (UniqueConstraint("user_id", "match_date", name="uq_match_day_claim"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    match_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    match_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Block(Base):
    """Ordered block relation; excluded from candidate pools permanently."""
    __tablename__ = "blocks"
    __table_args__ = (UniqueConstraint("blocker_id", "blocked_id", name="uq_block_pair"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    blocker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    blocked_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    match_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("matches.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Report(Base):
    """Side-channel abuse report; does not change match state."""
    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reporter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reported_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    match_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str] = mapped_column(String(500), nullable=False, default="other")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
