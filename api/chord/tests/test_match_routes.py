from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from chord.models.chat import MAX_MESSAGE_LENGTH
from chord.services.match_service import pseudonymous_id
from chord.tests.utils import auth_headers, create_match, create_user


async def _today_pair(session):
    a = await create_user(session, display_name="Asha")
    b = await create_user(session, display_name="Bruno")
    match = await create_match(session, a, b, match_date=datetime.now(timezone.utc).date())
    return a, b, match


@pytest.mark.asyncio
async def test_today_match_empty(client, session):
    user = await create_user(session)
    response = await client.get("/api/matches/today", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json() == {"match": None}


@pytest.mark.asyncio
async def test_reveal_flow_over_http(client, session):
    a, b, match = await _today_pair(session)
    a_headers, b_headers = auth_headers(a), auth_headers(b)

    today = (await client.get("/api/matches/today", headers=a_headers)).json()["match"]
    assert today["id"] == str(match.id)
    assert today["state"] == "active_hidden"
    assert today["counterpart"]["id"].startswith("music_lover_")
    assert today["counterpart"]["display_name"] is None

    requested = await client.post(f"/api/chat/{match.id}/reveal-request", headers=a_headers)
    assert requested.status_code == 200
    assert requested.json()["state"] == "reveal_pending"

    self_accept = await client.post(f"/api/chat/{match.id}/reveal-accept", headers=a_headers)
    assert self_accept.status_code == 403

    accepted = await client.post(f"/api/chat/{match.id}/reveal-accept", headers=b_headers)
    assert accepted.status_code == 200
    assert accepted.json()["state"] == "revealed"

    revealed = (await client.get("/api/matches/today", headers=a_headers)).json()["match"]
    assert revealed["counterpart"]["display_name"] == "Bruno"

    again = await client.post(f"/api/chat/{match.id}/reveal-request", headers=b_headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_chat_over_http(client, session):
    a, b, match = await _today_pair(session)

    sent = await client.post(f"/api/chat/{match.id}/messages", json={"content": " hello "}, headers=auth_headers(a))
    assert sent.status_code == 201
    assert sent.json()["content"] == "hello"

    blank = await client.post(f"/api/chat/{match.id}/messages", json={"content": "  "}, headers=auth_headers(a))
    assert blank.status_code == 400

    padded = " " + "x" * MAX_MESSAGE_LENGTH + " "
    full = await client.post(f"/api/chat/{match.id}/messages", json={"content": padded}, headers=auth_headers(a))
    assert full.status_code == 201
    assert full.json()["content"] == "x" * MAX_MESSAGE_LENGTH

    listed = await client.get(f"/api/chat/{match.id}/messages", headers=auth_headers(b))
    assert sorted(message["content"] for message in listed.json()) == ["hello", "x" * MAX_MESSAGE_LENGTH]
    assert {message["sender"] for message in listed.json()} == {pseudonymous_id(a.id)}

    read = await client.post(f"/api/chat/{match.id}/read", headers=auth_headers(b))
    assert read.json() == {"updated": 2}


@pytest.mark.asyncio
async def test_unknown_and_foreign_matches(client, session):
    _, _, match = await _today_pair(session)
    outsider = await create_user(session)
    headers = auth_headers(outsider)

    missing = await client.post(f"/api/matches/{uuid.uuid4()}/block", headers=headers)
    assert missing.status_code == 404

    foreign = await client.get(f"/api/chat/{match.id}/messages", headers=headers)
    assert foreign.status_code == 403


@pytest.mark.asyncio
async def test_block_and_report_over_http(client, session):
    a, b, match = await _today_pair(session)

    reported = await client.post(
        f"/api/matches/{match.id}/report", json={"reason": "spam"}, headers=auth_headers(a)
    )
    assert reported.status_code == 201
    assert reported.json()["reason"] == "spam"

    blocked = await client.post(f"/api/matches/{match.id}/block", headers=auth_headers(a))
    assert blocked.status_code == 200
    assert blocked.json()["state"] == "blocked"

    today = await client.get("/api/matches/today", headers=auth_headers(b))
    assert today.json() == {"match": None}
    history = await client.get("/api/matches/history", headers=auth_headers(b))
    assert history.json() == []
    message = await client.post(f"/api/chat/{match.id}/messages", json={"content": "hi"}, headers=auth_headers(b))
    assert message.status_code == 409
