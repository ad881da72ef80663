from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from chord.models.provider_token import ProviderToken
from chord.services.token_vault import TokenVault, token_vault
from chord.tests.utils import create_user


def test_sealed_tokens_are_not_plaintext():
    ciphertext = token_vault.seal({"access_token": "abc123"})

    assert "abc123" not in ciphertext
    assert token_vault.unseal(ciphertext) == {"access_token": "abc123"}


def test_rotated_keys_still_open_old_ciphertext():
    old = TokenVault("old-secret")
    rotated = TokenVault("new-secret,old-secret")

    assert rotated.unseal(old.seal({"access_token": "abc"})) == {"access_token": "abc"}
    assert old.unseal(rotated.seal({"access_token": "abc"})) is None


@pytest.mark.asyncio
async def test_expired_tokens_are_hidden_unless_asked_for(session):
    user = await create_user(session)
    await token_vault.save(
        session,
        user_id=user.id,
        provider="spotify",
        tokens={"access_token": "stale"},
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )

    assert await token_vault.load(session, user_id=user.id, provider="spotify") is None
    stored = await token_vault.load(session, user_id=user.id, provider="spotify", include_expired=True)
    assert stored.tokens == {"access_token": "stale"}
    assert stored.expires_at.tzinfo is not None


@pytest.mark.asyncio
async def test_revoke_forgets_tokens_until_saved_again(session):
    user = await create_user(session)
    await token_vault.save(session, user_id=user.id, provider="spotify", tokens={"access_token": "a"})

    await token_vault.revoke(session, user_id=user.id, provider="spotify", reason="refresh rejected")

    assert await token_vault.load(session, user_id=user.id, provider="spotify", include_expired=True) is None
    row = await session.scalar(select(ProviderToken).where(ProviderToken.user_id == user.id))
    assert row.ciphertext is None
    assert row.revoked_reason == "refresh rejected"

    await token_vault.save(session, user_id=user.id, provider="spotify", tokens={"access_token": "b"})
    stored = await token_vault.load(session, user_id=user.id, provider="spotify")
    assert stored.tokens == {"access_token": "b"}
