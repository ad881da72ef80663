"""Server-side storage for provider OAuth tokens.

Tokens are sealed with Fernet before they reach the database. ``CREDENTIAL_VAULT_KEY``
may hold several comma-separated secrets: the first seals new tokens and every
one of them can still open older rows, so keys can be rotated without a
re-link. Without a configured key the JWT secret is used.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.config import settings
from chord.models.provider_token import ProviderToken

logger = logging.getLogger("chord.services.token_vault")

REVOKED_REASON_LENGTH = 255


def _fernet_for(secret: str) -> Fernet:
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest()))


@dataclass(frozen=True)
class StoredTokens:
    tokens: dict[str, Any]
    expires_at: datetime | None

    def expired(self, at: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= at


class TokenVault:
    def __init__(self, secrets: str | None = None) -> None:
        raw = secrets or settings.credential_vault_key or settings.jwt_secret_key
        keys = [part.strip() for part in raw.split(",") if part.strip()]
        self._cipher = MultiFernet([_fernet_for(key) for key in keys])

    def seal(self, tokens: dict[str, Any]) -> str:
        return self._cipher.encrypt(json.dumps(tokens).encode("utf-8")).decode("ascii")

    def unseal(self, ciphertext: str | None) -> dict[str, Any] | None:
        if not ciphertext:
            return None
        try:
            return json.loads(self._cipher.decrypt(ciphertext.encode("ascii")))
        except InvalidToken:
            logger.warning("Provider token sealed with an unknown key; treating it as missing")
            return None

    async def _row(self, session: AsyncSession, user_id: uuid.UUID, provider: str) -> ProviderToken | None:
        return await session.scalar(
            select(ProviderToken).where(ProviderToken.user_id == user_id, ProviderToken.provider == provider)
        )

    async def save(
        self,
        session: AsyncSession,
        *,
        user_id: uuid.UUID,
        provider: str,
        tokens: dict[str, Any],
        expires_at: datetime | None = None,
    ) -> ProviderToken:
        """Seal and upsert the user's tokens, clearing any earlier revocation."""
        row = await self._row(session, user_id, provider)
        if row is None:
            row = ProviderToken(user_id=user_id, provider=provider)
            session.add(row)
        row.ciphertext = self.seal(tokens)
        row.expires_at = expires_at
        row.refreshed_at = datetime.now(timezone.utc)
        row.revoked_at = None
        row.revoked_reason = None
        await session.commit()
        await session.refresh(row)
        return row

    async def load(
        self,
        session: AsyncSession,
        *,
        user_id: uuid.UUID,
        provider: str,
        include_expired: bool = False,
    ) -> StoredTokens | None:
        """Open the stored tokens; None when absent, revoked, unreadable, or (by default) expired."""
        row = await self._row(session, user_id, provider)
        if row is None or row.is_revoked:
            return None
        tokens = self.unseal(row.ciphertext)
        if tokens is None:
            return None
        stored = StoredTokens(tokens=tokens, expires_at=row.expires_at)
        if not include_expired and stored.expired(datetime.now(timezone.utc)):
            return None
        return stored

    async def revoke(self, session: AsyncSession, *, user_id: uuid.UUID, provider: str, reason: str) -> None:
        """Forget the tokens after the provider rejected them; the reason is kept."""
        row = await self._row(session, user_id, provider)
        if row is None:
            return
        row.ciphertext = None
        row.revoked_at = datetime.now(timezone.utc)
        row.revoked_reason = reason[:REVOKED_REASON_LENGTH]
        await session.commit()
        logger.info("Revoked %s tokens for user %s: %s", provider, user_id, reason)


token_vault = TokenVault()
