"""Spotify account-linking schemas."""

from __future__ import annotations

from pydantic import BaseModel


class SpotifyAuthorizeRead(BaseModel):
    authorize_url: str
    state: str


class SpotifyLinkRead(BaseModel):
    status: str
    spotify_id: str | None = None
    synced: bool = False
