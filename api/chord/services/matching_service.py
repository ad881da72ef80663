"""Daily matching run: pick at most one partner per eligible user per day.

Invariants:
- ``commit_match`` is the authority on "one match per user per day": it writes
  the Match and one MatchDayClaim per participant in a single transaction and
  a uniqueness violation surfaces as ConflictError. The pre-check in
  ``process_user`` only saves work.
- A failure for one user (timeout, provider error, lost race) never aborts the
  run for the others.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.config import settings
from chord.core.errors import ConflictError, ValidationError
from chord.matching.candidates import Candidate, CandidateSource, DatabaseCandidateSource, Location
from chord.matching.embedding import EMBEDDING_DIMENSIONS
from chord.matching.scoring import match_score
from chord.models.match import Match, MatchDayClaim, make_pair_key
from chord.models.user import User, UserTasteProfile

logger = logging.getLogger("chord.services.matching")


@dataclass(slots=True)
class EligibleUser:
    user_id: uuid.UUID
    embedding: list[float]
    location: Location


@dataclass(slots=True)
class ScoredCandidate:
    candidate: Candidate
    match_score: float


@dataclass(slots=True)
class MatchingRunSummary:
    """Counters reported by a single matching sweep."""
    match_date: date
    users_processed: int = 0
    matches_created: int = 0
    users_skipped: int = 0
    conflicts: int = 0
    failures: int = 0

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["match_date"] = self.match_date.isoformat()
        return payload


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def _in_partition(user_id: uuid.UUID, partition_index: int, partition_count: int) -> bool:
    return user_id.int % partition_count == partition_index


async def list_eligible_users(
    session: AsyncSession, *, partition_index: int = 0, partition_count: int = 1
) -> list[EligibleUser]:
    """Active users holding both a usable taste profile and a location."""
    if partition_count < 1 or not 0 <= partition_index < partition_count:
        raise ValidationError(f"Invalid partition {partition_index}/{partition_count}")
    result = await session.execute(
        select(User.id, User.latitude, User.longitude, UserTasteProfile.embedding)
        .join(UserTasteProfile, UserTasteProfile.user_id == User.id)
        .where(
            User.is_active.is_(True),
            User.latitude.is_not(None),
            User.longitude.is_not(None),
        )
        .order_by(User.id)
    )
    eligible: list[EligibleUser] = []
    for user_id, latitude, longitude, embedding in result.all():
        if not embedding or len(embedding) != EMBEDDING_DIMENSIONS:
            continue
        if not _in_partition(user_id, partition_index, partition_count):
            continue
        eligible.append(
            EligibleUser(
                user_id=user_id,
                embedding=[float(value) for value in embedding],
                location=Location(latitude=latitude, longitude=longitude),
            )
        )
    return eligible


async def has_match_on(session: AsyncSession, user_id: uuid.UUID, match_date: date) -> bool:
    """Return True if the user already holds a match (as either party) on the date."""
    claimed = exists().where(MatchDayClaim.user_id == user_id, MatchDayClaim.match_date == match_date)
    matched = exists().where(
        or_(Match.user1_id == user_id, Match.user2_id == user_id),
        Match.created_date == match_date,
    )
    return bool(await session.scalar(select(or_(claimed, matched))))


def select_best_candidate(
    candidates: Sequence[Candidate], *, max_distance_km: float
) -> ScoredCandidate | None:
    """Highest-scoring candidate; ties go to the lowest candidate id."""
    best: ScoredCandidate | None = None
    for candidate in sorted(candidates, key=lambda item: str(item.candidate_id)):
        score = match_score(
            candidate.music_similarity,
            candidate.distance_km,
            candidate.activity_score,
            max_distance_km,
        )
        if best is None or score > best.match_score:
            best = ScoredCandidate(candidate=candidate, match_score=score)
    return best


async def commit_match(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    scored: ScoredCandidate,
    match_date: date,
) -> Match:
    """Atomically create a match and claim the day for both participants."""
    partner_id = scored.candidate.candidate_id
    if partner_id == user_id:
        raise ValidationError("A user cannot be matched with themselves")
    match = Match(
        id=uuid.uuid4(),
        user1_id=user_id,
        user2_id=partner_id,
        pair_key=make_pair_key(user_id, partner_id),
        created_date=match_date,
        match_score=scored.match_score,
        music_similarity=scored.candidate.music_similarity,
        distance_km=scored.candidate.distance_km,
        is_active=True,
        identities_revealed=False,
    )
    session.add(match)
    session.add_all(
        [
            MatchDayClaim(user_id=user_id, match_date=match_date, match_id=match.id),
            MatchDayClaim(user_id=partner_id, match_date=match_date, match_id=match.id),
        ]
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(f"User {user_id} or {partner_id} already matched on {match_date}") from exc
    return match


async def process_user(
    session: AsyncSession,
    user: EligibleUser,
    *,
    candidate_source: CandidateSource,
    match_date: date,
    max_distance_km: float,
    timeout_seconds: float,
) -> Match | None:
    """Match one user; None when already matched or no candidate qualifies."""
    if await has_match_on(session, user.user_id, match_date):
        logger.debug("User %s already has a match on %s", user.user_id, match_date)
        return None
    candidates = await asyncio.wait_for(
        candidate_source.get_candidates(user.user_id, user.embedding, user.location, max_distance_km),
        timeout=timeout_seconds,
    )
    best = select_best_candidate(candidates, max_distance_km=max_distance_km)
    if best is None:
        logger.debug("No candidates for user %s", user.user_id)
        return None
    return await commit_match(session, user_id=user.user_id, scored=best, match_date=match_date)


async def run_daily_matching(
    session: AsyncSession,
    *,
    match_date: date | None = None,
    candidate_source: CandidateSource | None = None,
    max_distance_km: float | None = None,
    partition_index: int = 0,
    partition_count: int = 1,
) -> MatchingRunSummary:
    """Sweep the eligible population (or one partition of it) once."""
    run_date = match_date or today_utc()
    distance_limit = max_distance_km or settings.matching_max_distance_km
    source = candidate_source or DatabaseCandidateSource(
        session,
        match_date=run_date,
        limit=settings.matching_candidate_limit,
        activity_decay_days=settings.activity_decay_days,
    )
    summary = MatchingRunSummary(match_date=run_date)
    eligible = await list_eligible_users(
        session, partition_index=partition_index, partition_count=partition_count
    )
    logger.info(
        "Processing %d users for matching on %s (partition %d/%d)",
        len(eligible),
        run_date,
        partition_index,
        partition_count,
    )

    for user in eligible:
        summary.users_processed += 1
        try:
            match = await process_user(
                session,
                user,
                candidate_source=source,
                match_date=run_date,
                max_distance_km=distance_limit,
                timeout_seconds=settings.matching_candidate_timeout_seconds,
            )
        except ConflictError as exc:
            summary.conflicts += 1
            logger.info("Match commit lost the race for user %s: %s", user.user_id, exc.message)
            continue
        except asyncio.TimeoutError:
            summary.failures += 1
            logger.warning("Candidate lookup timed out for user %s", user.user_id)
            await session.rollback()
            continue
        except Exception:
            summary.failures += 1
            logger.exception("Matching failed for user %s", user.user_id)
            await session.rollback()
            continue
        if match is None:
            summary.users_skipped += 1
            continue
        summary.matches_created += 1
        logger.info(
            "Created match between %s and %s (score=%.3f)",
            match.user1_id,
            match.user2_id,
            match.match_score,
        )

    logger.info(
        "Daily matching complete for %s: %d matches from %d users (%d conflicts, %d failures)",
        run_date,
        summary.matches_created,
        summary.users_processed,
        summary.conflicts,
        summary.failures,
    )
    return summary
