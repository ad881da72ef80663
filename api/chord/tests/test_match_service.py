from __future__ import annotations

import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy import select, update

from chord.core.errors import AuthorizationError, ConflictError, NotFoundError
from chord.models.match import Block, Match, MatchState, Report
from chord.services import chat_service, match_service
from chord.tests.utils import create_match, create_user, unit_embedding

MATCH_DATE = date(2026, 10, 19)


async def _pair(session, **kwargs):
    a = await create_user(session, display_name="Asha", **kwargs)
    b = await create_user(session, display_name="Bruno", **kwargs)
    match = await create_match(session, a, b, match_date=MATCH_DATE)
    return a.id, b.id, match.id


@pytest.mark.asyncio
async def test_reveal_handshake(session):
    a_id, b_id, match_id = await _pair(session)

    assert await match_service.request_reveal(session, match_id, a_id) is MatchState.REVEAL_PENDING
    assert await match_service.accept_reveal(session, match_id, b_id) is MatchState.REVEALED

    match = await session.get(Match, match_id)
    assert match.identities_revealed is True
    assert match.reveal_requested_by == a_id
    assert match.version == 3


@pytest.mark.asyncio
async def test_requester_cannot_accept_own_request(session):
    a_id, _, match_id = await _pair(session)
    await match_service.request_reveal(session, match_id, a_id)

    with pytest.raises(AuthorizationError):
        await match_service.accept_reveal(session, match_id, a_id)


@pytest.mark.asyncio
async def test_accept_without_pending_request_conflicts(session):
    _, b_id, match_id = await _pair(session)

    with pytest.raises(ConflictError):
        await match_service.accept_reveal(session, match_id, b_id)


@pytest.mark.asyncio
async def test_second_request_moves_request_to_latest_caller(session):
    a_id, b_id, match_id = await _pair(session)
    await match_service.request_reveal(session, match_id, a_id)

    state = await match_service.request_reveal(session, match_id, b_id)

    match = await session.get(Match, match_id)
    assert state is MatchState.REVEAL_PENDING
    assert match.reveal_requested_by == b_id
    assert await match_service.accept_reveal(session, match_id, a_id) is MatchState.REVEALED


@pytest.mark.asyncio
async def test_request_after_reveal_conflicts(session):
    a_id, b_id, match_id = await _pair(session)
    await match_service.request_reveal(session, match_id, a_id)
    await match_service.accept_reveal(session, match_id, b_id)

    with pytest.raises(ConflictError):
        await match_service.request_reveal(session, match_id, b_id)


@pytest.mark.asyncio
async def test_unknown_match_and_outsider_are_rejected(session):
    a_id, _, match_id = await _pair(session)
    outsider = await create_user(session)

    with pytest.raises(NotFoundError):
        await match_service.request_reveal(session, uuid.uuid4(), a_id)
    with pytest.raises(AuthorizationError):
        await match_service.request_reveal(session, match_id, outsider.id)
    with pytest.raises(AuthorizationError):
        await match_service.block(session, match_id, outsider.id)


@pytest.mark.asyncio
async def test_stale_version_is_rejected(session):
    a_id, b_id, match_id = await _pair(session)
    await match_service.request_reveal(session, match_id, a_id)
    # Another writer bumps the row behind the session's back.
    await session.execute(
        update(Match)
        .where(Match.id == match_id)
        .values(version=Match.version + 1)
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    with pytest.raises(ConflictError):
        await match_service.accept_reveal(session, match_id, b_id)

    revealed, version = (
        await session.execute(select(Match.identities_revealed, Match.version).where(Match.id == match_id))
    ).one()
    assert revealed is False
    assert version == 3


@pytest.mark.asyncio
async def test_block_ends_match_and_records_relation(session):
    a_id, b_id, match_id = await _pair(session)

    assert await match_service.block(session, match_id, b_id) is MatchState.BLOCKED
    # Blocking twice is harmless.
    assert await match_service.block(session, match_id, b_id) is MatchState.BLOCKED

    blocks = (await session.scalars(select(Block).where(Block.blocker_id == b_id))).all()
    assert [(block.blocked_id, block.match_id) for block in blocks] == [(a_id, match_id)]
    with pytest.raises(ConflictError):
        await match_service.request_reveal(session, match_id, a_id)
    with pytest.raises(ConflictError):
        await chat_service.send_message(session, match_id, a_id, "still there?")


@pytest.mark.asyncio
async def test_block_after_reveal_is_allowed(session):
    a_id, b_id, match_id = await _pair(session)
    await match_service.request_reveal(session, match_id, a_id)
    await match_service.accept_reveal(session, match_id, b_id)

    assert await match_service.block(session, match_id, a_id) is MatchState.BLOCKED


@pytest.mark.asyncio
async def test_block_deactivates_other_matches_between_the_pair(session):
    a = await create_user(session)
    b = await create_user(session)
    earlier = await create_match(session, a, b, match_date=MATCH_DATE - timedelta(days=3))
    today = await create_match(session, b, a, match_date=MATCH_DATE)
    earlier_id, today_id, a_id = earlier.id, today.id, a.id

    await match_service.block(session, today_id, a_id)

    rows = await session.execute(select(Match.id, Match.is_active).where(Match.id.in_([earlier_id, today_id])))
    assert dict(rows.all()) == {earlier_id: False, today_id: False}


@pytest.mark.asyncio
async def test_report_defaults_reason_and_keeps_state(session):
    a_id, b_id, match_id = await _pair(session)

    record = await match_service.report(session, match_id, a_id, "  ")

    assert record.reason == "other"
    assert record.reported_id == b_id
    match = await session.get(Match, match_id)
    assert match_service.match_state(match) is MatchState.ACTIVE_HIDDEN
    assert len((await session.scalars(select(Report))).all()) == 1


@pytest.mark.asyncio
async def test_today_match_is_pseudonymous_until_revealed(session):
    artists = [{"name": name, "spotify_id": name.lower()} for name in ("Arca", "Bjork", "Caribou", "Dntel")]
    a = await create_user(
        session,
        display_name="Asha",
        embedding=unit_embedding(0),
        top_artists=artists,
        top_genres=[{"name": "art pop", "weight": 0.5}, {"name": "idm", "weight": 0.3}],
    )
    b = await create_user(
        session,
        display_name="Bruno",
        embedding=unit_embedding(0),
        top_artists=list(reversed(artists)),
        top_genres=[{"name": "idm", "weight": 0.6}],
    )
    match = await create_match(session, a, b, match_date=MATCH_DATE)
    a_id, b_id, match_id = a.id, b.id, match.id

    view = await match_service.get_today_match(session, a_id, today=MATCH_DATE)

    assert view.id == match_id
    assert view.state is MatchState.ACTIVE_HIDDEN
    assert view.counterpart.id == f"music_lover_{str(b_id)[:8]}"
    assert view.counterpart.display_name is None
    assert view.shared_artists == ["Arca", "Bjork", "Caribou"]
    assert view.shared_genres == ["idm"]

    await match_service.request_reveal(session, match_id, a_id)
    assert (await match_service.get_today_match(session, a_id, today=MATCH_DATE)).reveal_requested is True
    assert (await match_service.get_today_match(session, b_id, today=MATCH_DATE)).reveal_requested is False

    await match_service.accept_reveal(session, match_id, b_id)
    revealed = await match_service.get_today_match(session, a_id, today=MATCH_DATE)
    assert revealed.counterpart.id == str(b_id)
    assert revealed.counterpart.display_name == "Bruno"


@pytest.mark.asyncio
async def test_today_match_ignores_blocked_and_other_days(session):
    a_id, b_id, match_id = await _pair(session)
    assert await match_service.get_today_match(session, a_id, today=MATCH_DATE + timedelta(days=1)) is None

    await match_service.block(session, match_id, b_id)

    assert await match_service.get_today_match(session, a_id, today=MATCH_DATE) is None


@pytest.mark.asyncio
async def test_history_lists_active_matches_newest_first(session):
    me = await create_user(session)
    partners = [await create_user(session) for _ in range(3)]
    matches = [
        await create_match(session, me, partner, match_date=MATCH_DATE - timedelta(days=offset))
        for offset, partner in enumerate(partners)
    ]
    me_id = me.id
    expected = [match.id for match in matches[:2]]
    await match_service.block(session, matches[2].id, me_id)

    history = await match_service.get_match_history(session, me_id)

    assert [item.id for item in history] == expected
    assert all(item.counterpart.id.startswith("music_lover_") for item in history)
    assert len(await match_service.get_match_history(session, me_id, limit=1)) == 1
