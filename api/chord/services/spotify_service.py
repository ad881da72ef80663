"""Spotify OAuth, token refresh, and the listening-history client."""

from __future__ import annotations

import base64
import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.config import DEFAULT_SPOTIFY_SCOPES, settings
from chord.core.errors import ConflictError, NotFoundError, ValidationError
from chord.core.security import SPOTIFY_STATE_TOKEN_TYPE, create_token, decode_token
from chord.models.provider_token import ProviderToken
from chord.models.user import User
from chord.services.token_vault import token_vault
from chord.utils.http import ExternalAPIError, fetch_json

logger = logging.getLogger("chord.services.spotify")

SPOTIFY_AUTH_BASE = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"
PROVIDER = "spotify"
# Spotify rejects more than 100 ids per audio-features call.
AUDIO_FEATURES_BATCH_SIZE = 100
MAX_TOP_ITEMS = 50
REFRESH_LEEWAY = timedelta(minutes=5)
STATE_TOKEN_TTL = timedelta(minutes=10)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_spotify_credentials() -> tuple[str, str]:
    """Client id and secret, or 503 when the deployment has no Spotify app configured."""
    if not settings.spotify_client_id or not settings.spotify_client_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Spotify credentials missing",
        )
    return settings.spotify_client_id, settings.spotify_client_secret


def _basic_auth_header() -> dict[str, str]:
    client_id, client_secret = _require_spotify_credentials()
    auth = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("utf-8")
    return {"Authorization": f"Basic {auth}"}


def _redirect_uri(override: str | None = None) -> str:
    redirect = override or settings.spotify_redirect_uri
    if not redirect:
        raise ValidationError("Spotify redirect URI missing")
    return redirect


def build_state_token(user_id: uuid.UUID) -> str:
    """Ten-minute JWT binding the OAuth round trip to the user who started it."""
    return create_token(str(user_id), STATE_TOKEN_TTL, SPOTIFY_STATE_TOKEN_TYPE)


def decode_state_token(token: str) -> uuid.UUID:
    payload = decode_token(token, expected_type=SPOTIFY_STATE_TOKEN_TYPE)
    if not payload:
        raise ValidationError("Invalid state token")
    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError as exc:
        raise ValidationError("Invalid state token") from exc


def build_authorize_url(state: str, *, redirect_uri: str | None = None) -> str:
    """URL the app opens so the user can grant Chord access to their listening history."""
    client_id, _ = _require_spotify_credentials()
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": _redirect_uri(redirect_uri),
        "scope": " ".join(settings.spotify_scopes or DEFAULT_SPOTIFY_SCOPES),
        "state": state,
    }
    return f"{SPOTIFY_AUTH_BASE}?{urlencode(params)}"


async def exchange_code_for_token(code: str, *, redirect_uri: str | None = None) -> dict[str, Any]:
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": _redirect_uri(redirect_uri),
    }
    try:
        return await fetch_json(SPOTIFY_TOKEN_URL, method="POST", data=data, headers=_basic_auth_header())
    except ExternalAPIError as exc:
        if exc.status_code and exc.status_code < 500:
            raise ValidationError("Spotify token exchange failed") from exc
        raise


async def refresh_access_token(refresh_token: str) -> dict[str, Any]:
    data = {"grant_type": "refresh_token", "refresh_token": refresh_token}
    return await fetch_json(SPOTIFY_TOKEN_URL, method="POST", data=data, headers=_basic_auth_header())


async def store_tokens(session: AsyncSession, *, user_id: uuid.UUID, payload: dict[str, Any]) -> ProviderToken:
    """Seal a token response from Spotify's token endpoint."""
    expires_in = int(payload.get("expires_in") or 0)
    tokens = {key: payload.get(key) for key in ("access_token", "refresh_token", "scope", "token_type")}
    return await token_vault.save(
        session,
        user_id=user_id,
        provider=PROVIDER,
        tokens=tokens,
        expires_at=_utcnow() + timedelta(seconds=expires_in) if expires_in else None,
    )


async def ensure_access_token(session: AsyncSession, *, user_id: uuid.UUID) -> str:
    """Return a usable access token, refreshing it shortly before expiry."""
    stored = await token_vault.load(session, user_id=user_id, provider=PROVIDER, include_expired=True)
    if stored is None or not stored.tokens.get("access_token"):
        raise NotFoundError("Spotify not connected")
    if not stored.expired(_utcnow() + REFRESH_LEEWAY):
        return str(stored.tokens["access_token"])
    refresh_token = stored.tokens.get("refresh_token")
    if not refresh_token:
        raise ValidationError("Spotify refresh token missing")
    try:
        refreshed = await refresh_access_token(str(refresh_token))
    except ExternalAPIError as exc:
        if exc.status_code in (400, 401):
            await token_vault.revoke(session, user_id=user_id, provider=PROVIDER, reason=f"refresh rejected: {exc}")
        raise
    # Spotify only rotates the refresh token sometimes; keep the old one otherwise.
    refreshed.setdefault("refresh_token", refresh_token)
    await store_tokens(session, user_id=user_id, payload=refreshed)
    logger.info("Refreshed Spotify token for user %s", user_id)
    return str(refreshed["access_token"])


class SpotifyListeningHistory:
    """Read a user's top tracks, top artists, and per-track audio descriptors."""

    def __init__(self, access_token: str, *, batch_size: int = AUDIO_FEATURES_BATCH_SIZE) -> None:
        self.access_token = access_token
        self.batch_size = min(batch_size, AUDIO_FEATURES_BATCH_SIZE)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await fetch_json(
            f"{SPOTIFY_API_BASE}{path}",
            headers={"Authorization": f"Bearer {self.access_token}"},
            params=params,
        )

    async def get_profile(self) -> dict[str, Any]:
        return await self._get("/me")

    async def get_top_tracks(self, *, limit: int = MAX_TOP_ITEMS, time_range: str = "medium_term") -> list[dict[str, Any]]:
        data = await self._get("/me/top/tracks", {"limit": min(limit, MAX_TOP_ITEMS), "time_range": time_range})
        return list(data.get("items") or [])

    async def get_top_artists(self, *, limit: int = MAX_TOP_ITEMS, time_range: str = "medium_term") -> list[dict[str, Any]]:
        data = await self._get("/me/top/artists", {"limit": min(limit, MAX_TOP_ITEMS), "time_range": time_range})
        return list(data.get("items") or [])

    async def get_audio_features(self, track_ids: Sequence[str]) -> list[dict[str, Any]]:
        """Fetch descriptors in batches; tracks Spotify has none for are dropped."""
        ids = [track_id for track_id in track_ids if track_id]
        features: list[dict[str, Any]] = []
        for start in range(0, len(ids), self.batch_size):
            batch = ids[start : start + self.batch_size]
            data = await self._get("/audio-features", {"ids": ",".join(batch)})
            features.extend(item for item in data.get("audio_features") or [] if item)
        return features


async def listening_history_for(session: AsyncSession, *, user_id: uuid.UUID) -> SpotifyListeningHistory:
    access_token = await ensure_access_token(session, user_id=user_id)
    return SpotifyListeningHistory(access_token)


async def link_account(session: AsyncSession, *, user: User, code: str) -> User:
    """Finish the OAuth flow: store tokens and fill profile fields from Spotify."""
    tokens = await exchange_code_for_token(code)
    profile = await SpotifyListeningHistory(str(tokens.get("access_token"))).get_profile()
    spotify_id = profile.get("id")
    if spotify_id and user.spotify_id != spotify_id:
        owner = await session.scalar(select(User.id).where(User.spotify_id == spotify_id, User.id != user.id))
        if owner:
            raise ConflictError("Spotify account already linked to another user")
        user.spotify_id = spotify_id
    await store_tokens(session, user_id=user.id, payload=tokens)
    if not user.display_name and profile.get("display_name"):
        user.display_name = profile["display_name"]
    if not user.email and profile.get("email"):
        user.email = profile["email"]
    images = profile.get("images") or []
    if not user.profile_photo_url and images:
        user.profile_photo_url = images[0].get("url")
    await session.commit()
    await session.refresh(user)
    logger.info("Linked Spotify account %s to user %s", spotify_id, user.id)
    return user
