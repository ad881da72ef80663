from __future__ import annotations

import uuid
from datetime import date

import pytest

from chord.core.errors import ValidationError
from chord.matching.candidates import Candidate, DatabaseCandidateSource, Location
from chord.models.match import Block
from chord.tests.utils import BASE_LAT, BASE_LNG, create_match, create_user, unit_embedding

MATCH_DATE = date(2026, 10, 19)


async def _candidate_ids(session, user, **kwargs):
    source = DatabaseCandidateSource(session, match_date=MATCH_DATE, **kwargs)
    candidates = await source.get_candidates(
        user.id, unit_embedding(0), Location(latitude=BASE_LAT, longitude=BASE_LNG), 50.0
    )
    return [candidate.candidate_id for candidate in candidates]


@pytest.mark.asyncio
async def test_candidates_exclude_self_far_inactive_and_profileless_users(session):
    me = await create_user(session, embedding=unit_embedding(0))
    near = await create_user(session, latitude=BASE_LAT + 0.05, embedding=unit_embedding(0))
    await create_user(session, latitude=BASE_LAT + 1.0, embedding=unit_embedding(0))
    await create_user(session, embedding=unit_embedding(0), is_active=False)
    await create_user(session, embedding=None)
    await create_user(session, latitude=None, longitude=None, embedding=unit_embedding(0))

    assert await _candidate_ids(session, me) == [near.id]


@pytest.mark.asyncio
async def test_candidates_exclude_blocks_in_both_directions(session):
    me = await create_user(session, embedding=unit_embedding(0))
    blocked_by_me = await create_user(session, embedding=unit_embedding(0))
    blocked_me = await create_user(session, embedding=unit_embedding(0))
    neutral = await create_user(session, embedding=unit_embedding(0))
    session.add_all(
        [
            Block(blocker_id=me.id, blocked_id=blocked_by_me.id),
            Block(blocker_id=blocked_me.id, blocked_id=me.id),
        ]
    )
    await session.commit()

    assert await _candidate_ids(session, me) == [neutral.id]


@pytest.mark.asyncio
async def test_candidates_skip_users_already_claimed_for_the_day(session):
    me = await create_user(session, embedding=unit_embedding(0))
    taken = await create_user(session, embedding=unit_embedding(0))
    partner = await create_user(session, embedding=unit_embedding(1))
    free = await create_user(session, embedding=unit_embedding(0))
    await create_match(session, taken, partner, match_date=MATCH_DATE)

    assert await _candidate_ids(session, me) == [free.id]


@pytest.mark.asyncio
async def test_candidates_sorted_by_distance_and_limited(session):
    me = await create_user(session, embedding=unit_embedding(0))
    far = await create_user(session, latitude=BASE_LAT + 0.2, embedding=unit_embedding(0))
    close = await create_user(session, latitude=BASE_LAT + 0.01, embedding=unit_embedding(0))
    middle = await create_user(session, latitude=BASE_LAT + 0.1, embedding=unit_embedding(0))

    assert await _candidate_ids(session, me) == [close.id, middle.id, far.id]
    assert await _candidate_ids(session, me, limit=2) == [close.id, middle.id]


@pytest.mark.asyncio
async def test_candidate_figures_are_in_range(session):
    me = await create_user(session, embedding=unit_embedding(0))
    await create_user(session, latitude=BASE_LAT + 0.03, embedding=unit_embedding(0, weight=0.5))
    source = DatabaseCandidateSource(session, match_date=MATCH_DATE)
    (candidate,) = await source.get_candidates(
        me.id, unit_embedding(0), Location(latitude=BASE_LAT, longitude=BASE_LNG), 50.0
    )
    assert candidate.music_similarity == pytest.approx(1.0)
    assert 3.0 < candidate.distance_km < 4.0
    assert candidate.activity_score == 1.0


def test_validated_candidate_rejects_bad_figures():
    with pytest.raises(ValidationError):
        Candidate.validated(candidate_id="not-a-uuid", music_similarity=0.5, distance_km=1.0, activity_score=0.5)
    with pytest.raises(ValidationError):
        Candidate.validated(candidate_id=uuid.uuid4(), music_similarity=1.5, distance_km=1.0, activity_score=0.5)
    with pytest.raises(ValidationError):
        Candidate.validated(candidate_id=uuid.uuid4(), music_similarity=0.5, distance_km=-1.0, activity_score=0.5)
    with pytest.raises(ValidationError):
        Candidate.validated(
            candidate_id=uuid.uuid4(), music_similarity=float("nan"), distance_km=1.0, activity_score=0.5
        )
