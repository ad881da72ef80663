"""Match, reveal, block, and report schemas."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chord.models.match import MatchState


class CounterpartRead(BaseModel):
    """The other participant: pseudonymous until identities are revealed."""
    id: str
    display_name: str | None = None
    profile_photo_url: str | None = None
    bio: str | None = None


class MatchRead(BaseModel):
    id: UUID
    state: MatchState
    created_date: date
    match_score: float
    music_similarity: float
    distance_km: float
    identities_revealed: bool
    reveal_requested: bool = False
    counterpart: CounterpartRead
    shared_artists: list[str] = Field(default_factory=list)
    shared_genres: list[str] = Field(default_factory=list)


class TodayMatchResponse(BaseModel):
    match: MatchRead | None = None


class MatchHistoryItem(BaseModel):
    id: UUID
    state: MatchState
    created_date: date
    match_score: float
    identities_revealed: bool
    counterpart: CounterpartRead


class MatchStateRead(BaseModel):
    match_id: UUID
    state: MatchState


class ReportCreate(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ReportRead(BaseModel):
    id: UUID
    match_id: UUID
    reason: str
    created_at: datetime
