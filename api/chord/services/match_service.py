"""Match lifecycle: reveal handshake, blocking, reporting, and match views.

Every state transition is a compare-and-set on ``Match.version``: the UPDATE
only applies if the row still carries the version that was read, so two
concurrent transitions can never both succeed. The loser gets ConflictError.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.config import settings
from chord.core.errors import AuthorizationError, ConflictError, NotFoundError
from chord.models.match import Block, Match, MatchState, Report
from chord.models.user import User, UserTasteProfile
from chord.schema.match import CounterpartRead, MatchHistoryItem, MatchRead

logger = logging.getLogger("chord.services.match")

PSEUDONYM_PREFIX = "music_lover_"
SHARED_ITEMS_LIMIT = 3
DEFAULT_REPORT_REASON = "other"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def match_state(match: Match) -> MatchState:
    if not match.is_active:
        return MatchState.BLOCKED
    if match.identities_revealed:
        return MatchState.REVEALED
    if match.reveal_requested_by is not None:
        return MatchState.REVEAL_PENDING
    return MatchState.ACTIVE_HIDDEN


def pseudonymous_id(user_id: uuid.UUID) -> str:
    return f"{PSEUDONYM_PREFIX}{str(user_id)[:8]}"


async def get_match_for_participant(session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID) -> Match:
    match = await session.get(Match, match_id)
    if match is None:
        raise NotFoundError("Match not found")
    if not match.has_participant(user_id):
        raise AuthorizationError("Not a participant in this match")
    return match


async def _compare_and_set(session: AsyncSession, match: Match, **values: Any) -> None:
    """Apply ``values`` only if the row is still at the version we read."""
    result = await session.execute(
        update(Match)
        .where(Match.id == match.id, Match.version == match.version)
        .values(version=match.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise ConflictError("Match was changed by someone else; try again")


def _ensure_active(match: Match) -> None:
    if not match.is_active:
        raise ConflictError("Match is no longer active")


async def request_reveal(session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID) -> MatchState:
    """Ask to reveal identities; a repeat request simply moves the request to the caller."""
    match = await get_match_for_participant(session, match_id, user_id)
    _ensure_active(match)
    if match.identities_revealed:
        raise ConflictError("Identities already revealed")
    await _compare_and_set(session, match, reveal_requested_by=user_id, reveal_requested_at=_utcnow())
    await session.commit()
    await session.refresh(match)
    logger.info("User %s requested reveal on match %s", user_id, match_id)
    return match_state(match)


async def accept_reveal(session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID) -> MatchState:
    match = await get_match_for_participant(session, match_id, user_id)
    _ensure_active(match)
    if match.identities_revealed:
        raise ConflictError("Identities already revealed")
    if match.reveal_requested_by is None:
        raise ConflictError("No reveal request pending")
    if match.reveal_requested_by == user_id:
        raise AuthorizationError("Cannot accept your own reveal request")
    await _compare_and_set(session, match, identities_revealed=True)
    await session.commit()
    await session.refresh(match)
    logger.info("Identities revealed on match %s", match_id)
    return match_state(match)


async def block(session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID) -> MatchState:
    """Block the counterpart, ending this match and any other active one between the pair."""
    match = await get_match_for_participant(session, match_id, user_id)
    other_id = match.other_user_id(user_id)
    existing = await session.scalar(
        select(Block.id).where(Block.blocker_id == user_id, Block.blocked_id == other_id)
    )
    if existing is None:
        session.add(Block(blocker_id=user_id, blocked_id=other_id, match_id=match.id))
    if match.is_active:
        await _compare_and_set(session, match, is_active=False)
    await session.execute(
        update(Match)
        .where(Match.pair_key == match.pair_key, Match.id != match.id, Match.is_active.is_(True))
        .values(is_active=False, version=Match.version + 1)
        .execution_options(synchronize_session=False)
    )
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("Block already being recorded; try again") from exc
    await session.refresh(match)
    logger.info("User %s blocked %s via match %s", user_id, other_id, match_id)
    return match_state(match)


async def report(
    session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID, reason: str | None = None
) -> Report:
    match = await get_match_for_participant(session, match_id, user_id)
    record = Report(
        reporter_id=user_id,
        reported_id=match.other_user_id(user_id),
        match_id=match.id,
        reason=(reason or "").strip() or DEFAULT_REPORT_REASON,
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    logger.info("User %s reported match %s", user_id, match_id)
    return record


def _counterpart(user: User | None, user_id: uuid.UUID, revealed: bool) -> CounterpartRead:
    if revealed and user is not None:
        return CounterpartRead(
            id=str(user.id),
            display_name=user.display_name,
            profile_photo_url=user.profile_photo_url,
            bio=user.bio,
        )
    return CounterpartRead(id=pseudonymous_id(user_id))


def _shared(first: Iterable[dict[str, Any]], second: Iterable[dict[str, Any]], key: str) -> list[str]:
    theirs = {item.get(key) for item in second if item.get(key)}
    shared: list[str] = []
    for item in first:
        if item.get(key) in theirs and item.get("name") not in shared:
            shared.append(item["name"])
    return shared[:SHARED_ITEMS_LIMIT]


async def _profiles_by_user(
    session: AsyncSession, user_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, UserTasteProfile]:
    result = await session.scalars(select(UserTasteProfile).where(UserTasteProfile.user_id.in_(user_ids)))
    return {profile.user_id: profile for profile in result.all()}


async def get_today_match(
    session: AsyncSession, user_id: uuid.UUID, *, today: date | None = None
) -> MatchRead | None:
    """Today's active match seen from ``user_id``, or None."""
    match_date = today or _utcnow().date()
    match = await session.scalar(
        select(Match)
        .where(
            or_(Match.user1_id == user_id, Match.user2_id == user_id),
            Match.created_date == match_date,
            Match.is_active.is_(True),
        )
        .limit(1)
    )
    if match is None:
        return None
    other_id = match.other_user_id(user_id)
    other = await session.get(User, other_id)
    profiles = await _profiles_by_user(session, [user_id, other_id])
    mine, theirs = profiles.get(user_id), profiles.get(other_id)
    shared_artists: list[str] = []
    shared_genres: list[str] = []
    if mine and theirs:
        shared_artists = _shared(mine.top_artists or [], theirs.top_artists or [], "spotify_id")
        shared_genres = _shared(mine.top_genres or [], theirs.top_genres or [], "name")
    return MatchRead(
        id=match.id,
        state=match_state(match),
        created_date=match.created_date,
        match_score=match.match_score,
        music_similarity=match.music_similarity,
        distance_km=match.distance_km,
        identities_revealed=match.identities_revealed,
        reveal_requested=match.reveal_requested_by == user_id,
        counterpart=_counterpart(other, other_id, match.identities_revealed),
        shared_artists=shared_artists,
        shared_genres=shared_genres,
    )


async def get_match_history(
    session: AsyncSession, user_id: uuid.UUID, *, limit: int | None = None
) -> list[MatchHistoryItem]:
    """Active matches for the user, newest first."""
    result = await session.scalars(
        select(Match)
        .where(or_(Match.user1_id == user_id, Match.user2_id == user_id), Match.is_active.is_(True))
        .order_by(Match.created_date.desc(), Match.created_at.desc())
        .limit(limit or settings.match_history_limit)
    )
    matches = list(result.all())
    other_ids = {match.other_user_id(user_id) for match in matches}
    users: dict[uuid.UUID, User] = {}
    if other_ids:
        rows = await session.scalars(select(User).where(User.id.in_(other_ids)))
        users = {user.id: user for user in rows.all()}
    history = []
    for match in matches:
        other_id = match.other_user_id(user_id)
        history.append(
            MatchHistoryItem(
                id=match.id,
                state=match_state(match),
                created_date=match.created_date,
                match_score=match.match_score,
                identities_revealed=match.identities_revealed,
                counterpart=_counterpart(users.get(other_id), other_id, match.identities_revealed),
            )
        )
    return history
