"""Music taste schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from chord.schema.base import ORMModel


class ArtistSummary(BaseModel):
    name: str | None = None
    spotify_id: str | None = None
    image: str | None = None
    genres: list[str] = Field(default_factory=list)


class GenreSummary(BaseModel):
    name: str
    weight: float


class TrackSummary(BaseModel):
    name: str | None = None
    artist: str = "Unknown"
    spotify_id: str | None = None


class MusicTasteRead(ORMModel):
    """Display summaries of a taste profile; the embedding stays server-side."""
    top_artists: list[ArtistSummary] = Field(default_factory=list)
    top_genres: list[GenreSummary] = Field(default_factory=list)
    top_tracks: list[TrackSummary] = Field(default_factory=list)
    last_synced_at: datetime | None = None


class SyncResult(BaseModel):
    status: str
    user_id: str
    last_synced_at: str | None = None
    top_genres: list[str | None] = Field(default_factory=list)
