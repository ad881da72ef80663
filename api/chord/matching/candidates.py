"""Candidate source contract and the database-backed implementation.

Invariants:
- Candidates never include the requesting user or anyone in a block relation
  with them (either direction).
- Every candidate is within ``max_distance_km`` and carries figures that were
  validated into their documented ranges.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.errors import DimensionMismatchError, ValidationError
from chord.matching.scoring import activity_score, haversine_km, similarity
from chord.models.match import Block, MatchDayClaim
from chord.models.user import User, UserTasteProfile

logger = logging.getLogger("chord.matching.candidates")

KM_PER_DEGREE_LAT = 111.0


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Candidate:
    """Precomputed pairing figures for one potential partner."""
    candidate_id: uuid.UUID
    music_similarity: float
    distance_km: float
    activity_score: float

    @classmethod
    def validated(
        cls,
        *,
        candidate_id: uuid.UUID | str,
        music_similarity: float,
        distance_km: float,
        activity_score: float,
    ) -> "Candidate":
        """Build a candidate, rejecting figures outside their ranges."""
        try:
            parsed_id = uuid.UUID(str(candidate_id))
        except ValueError as exc:
            raise ValidationError(f"Invalid candidate id: {candidate_id!r}") from exc
        values = (float(music_similarity), float(distance_km), float(activity_score))
        if any(math.isnan(value) for value in values):
            raise ValidationError("Candidate figures must be numbers")
        sim, dist, activity = values
        if not 0.0 <= sim <= 1.0:
            raise ValidationError(f"music_similarity out of range: {sim}")
        if dist < 0.0:
            raise ValidationError(f"distance_km must be non-negative: {dist}")
        if not 0.0 <= activity <= 1.0:
            raise ValidationError(f"activity_score out of range: {activity}")
        return cls(candidate_id=parsed_id, music_similarity=sim, distance_km=dist, activity_score=activity)


class CandidateSource(Protocol):
    async def get_candidates(
        self,
        user_id: uuid.UUID,
        embedding: Sequence[float],
        location: Location,
        max_distance_km: float,
    ) -> list[Candidate]: ...


def _bounding_box(location: Location, max_distance_km: float) -> tuple[float, float, float | None]:
    lat_delta = max_distance_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(location.latitude))
    if cos_lat < 0.01:
        return lat_delta, 0.0, None
    lon_delta = max_distance_km / (KM_PER_DEGREE_LAT * cos_lat)
    if abs(location.longitude) + lon_delta > 180:
        # Box would wrap the antimeridian; rely on the exact distance filter instead.
        return lat_delta, lon_delta, None
    return lat_delta, lon_delta, lon_delta


class DatabaseCandidateSource:
    """Nearby, unblocked, not-yet-claimed users with a taste profile."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        match_date: date,
        limit: int = 100,
        activity_decay_days: int = 30,
        now: datetime | None = None,
    ) -> None:
        self.session = session
        self.match_date = match_date
        self.limit = limit
        self.activity_decay_days = activity_decay_days
        self.now = now or datetime.now(timezone.utc)

    async def get_candidates(
        self,
        user_id: uuid.UUID,
        embedding: Sequence[float],
        location: Location,
        max_distance_km: float,
    ) -> list[Candidate]:
        lat_delta, _, lon_delta = _bounding_box(location, max_distance_km)
        blocked = select(Block.blocked_id).where(Block.blocker_id == user_id)
        blocked_by = select(Block.blocker_id).where(Block.blocked_id == user_id)
        claimed = select(MatchDayClaim.user_id).where(MatchDayClaim.match_date == self.match_date)
        stmt = (
            select(User.id, User.latitude, User.longitude, User.last_active_at, UserTasteProfile.embedding)
            .join(UserTasteProfile, UserTasteProfile.user_id == User.id)
            .where(
                User.is_active.is_(True),
                User.id != user_id,
                User.latitude.is_not(None),
                User.longitude.is_not(None),
                User.latitude.between(location.latitude - lat_delta, location.latitude + lat_delta),
                User.id.not_in(blocked),
                User.id.not_in(blocked_by),
                User.id.not_in(claimed),
            )
        )
        if lon_delta is not None:
            stmt = stmt.where(
                User.longitude.between(location.longitude - lon_delta, location.longitude + lon_delta)
            )
        rows = (await self.session.execute(stmt)).all()

        nearby: list[tuple[float, uuid.UUID, list[float], datetime | None]] = []
        for candidate_id, latitude, longitude, last_active_at, candidate_embedding in rows:
            distance = haversine_km(location.latitude, location.longitude, latitude, longitude)
            if distance <= max_distance_km:
                nearby.append((distance, candidate_id, candidate_embedding or [], last_active_at))
        nearby.sort(key=lambda row: (row[0], str(row[1])))

        candidates: list[Candidate] = []
        for distance, candidate_id, candidate_embedding, last_active_at in nearby[: self.limit]:
            try:
                music_similarity = similarity(embedding, candidate_embedding)
            except DimensionMismatchError:
                logger.warning("Skipping candidate %s with malformed embedding", candidate_id)
                continue
            candidates.append(
                Candidate.validated(
                    candidate_id=candidate_id,
                    music_similarity=min(max(music_similarity, 0.0), 1.0),
                    distance_km=distance,
                    activity_score=activity_score(
                        last_active_at, self.now, decay_days=self.activity_decay_days
                    ),
                )
            )
        return candidates
