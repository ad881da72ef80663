from __future__ import annotations

import pytest

from chord.models.user import UserTasteProfile
from chord.services import music_profile_service
from chord.tests.utils import auth_headers, create_user, unit_embedding
from chord.utils.http import ExternalAPIError


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client):
    response = await client.get("/api/users/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_read_and_update_profile(client, session):
    user = await create_user(session, display_name="Mira")
    headers = auth_headers(user)

    me = await client.get("/api/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["display_name"] == "Mira"

    updated = await client.put("/api/users/me", json={"bio": "vinyl and synths"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["bio"] == "vinyl and synths"
    assert updated.json()["display_name"] == "Mira"


@pytest.mark.asyncio
async def test_bio_longer_than_fifty_characters_is_rejected(client, session):
    user = await create_user(session)
    response = await client.put("/api/users/me", json={"bio": "x" * 51}, headers=auth_headers(user))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_location_is_rounded_before_storage(client, session):
    user = await create_user(session, latitude=None, longitude=None)

    response = await client.post(
        "/api/users/me/location",
        json={"latitude": 12.971598, "longitude": 77.594566},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json()["latitude"] == 12.97
    assert response.json()["longitude"] == 77.59
    await session.refresh(user)
    assert (user.latitude, user.longitude) == (12.97, 77.59)


@pytest.mark.asyncio
async def test_out_of_range_location_is_rejected(client, session):
    user = await create_user(session)
    response = await client.post(
        "/api/users/me/location", json={"latitude": 91, "longitude": 0}, headers=auth_headers(user)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_music_taste_hides_embedding(client, session):
    user = await create_user(
        session,
        embedding=unit_embedding(0),
        top_genres=[{"name": "city pop", "weight": 0.8}],
    )
    response = await client.get("/api/users/me/music-taste", headers=auth_headers(user))

    assert response.status_code == 200
    payload = response.json()
    assert payload["top_genres"] == [{"name": "city pop", "weight": 0.8}]
    assert "embedding" not in payload


@pytest.mark.asyncio
async def test_music_taste_missing_is_404(client, session):
    user = await create_user(session)
    response = await client.get("/api/users/me/music-taste", headers=auth_headers(user))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_sync_spotify_runs_inline_and_maps_provider_errors(client, session, monkeypatch):
    user = await create_user(session)
    headers = auth_headers(user)
    calls: list[bool] = []

    async def fake_get_or_sync(session, user_id, *, force_refresh=False, provider=None):
        calls.append(force_refresh)
        return UserTasteProfile(user_id=user_id, top_genres=[{"name": "j-rock", "weight": 1.0}])

    monkeypatch.setattr(music_profile_service, "get_or_sync_profile", fake_get_or_sync)
    response = await client.post("/api/users/me/sync-spotify", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "synced"
    assert response.json()["top_genres"] == ["j-rock"]
    assert calls == [True]

    async def failing_sync(session, user_id, *, force_refresh=False, provider=None):
        raise ExternalAPIError("Server error 503", status_code=503)

    monkeypatch.setattr(music_profile_service, "get_or_sync_profile", failing_sync)
    response = await client.post("/api/users/me/sync-spotify", headers=headers)
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_authenticated_requests_stamp_activity(client, session):
    user = await create_user(session)
    user.last_active_at = None
    await session.commit()

    await client.get("/api/users/me", headers=auth_headers(user))

    await session.refresh(user)
    assert user.last_active_at is not None
