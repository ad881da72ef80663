from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_health_reports_ok_without_auth(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["queue"] == "inline"


@pytest.mark.asyncio
async def test_root_health_alias(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
