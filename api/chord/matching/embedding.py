"""Taste profile builder: raw listening data to a 17-dimension embedding.

The embedding is ``[7 audio dims] + [10 genre dims]``:

- Audio dims average valence, energy, danceability, acousticness,
  instrumentalness, tempo and loudness over the tracks that carry audio
  features. Tempo is divided by 200 and loudness is mapped with
  ``(dB + 60) / 60``; the rest are already unit-scaled.
- Genre dims count genres across the top artists, keep the ten most frequent
  (ties by first appearance) and divide each count by the top count.

``top_genres`` uses a different normalization on purpose: weight is the share
of artists carrying the genre, not the ratio to the most frequent genre.

Everything here is a pure function; callers persist the result.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

AUDIO_FEATURES: tuple[str, ...] = (
    "valence",
    "energy",
    "danceability",
    "acousticness",
    "instrumentalness",
    "tempo",
    "loudness",
)
AUDIO_DIMENSIONS = len(AUDIO_FEATURES)
GENRE_DIMENSIONS = 10
EMBEDDING_DIMENSIONS = AUDIO_DIMENSIONS + GENRE_DIMENSIONS

TOP_ARTISTS_LIMIT = 10
TOP_GENRES_LIMIT = 5
TOP_TRACKS_LIMIT = 5

TEMPO_SCALE = 200.0
LOUDNESS_FLOOR_DB = -60.0


@dataclass(slots=True)
class TasteProfileData:
    """Embedding plus the display summaries derived from the same inputs."""
    embedding: list[float]
    top_artists: list[dict[str, Any]] = field(default_factory=list)
    top_genres: list[dict[str, Any]] = field(default_factory=list)
    top_tracks: list[dict[str, Any]] = field(default_factory=list)


def _clamp_unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def _normalize_feature(name: str, value: float) -> float:
    if name == "tempo":
        return value / TEMPO_SCALE
    if name == "loudness":
        return (value - LOUDNESS_FLOOR_DB) / -LOUDNESS_FLOOR_DB
    return value


def compute_audio_vector(audio_features: Iterable[Mapping[str, Any] | None]) -> list[float]:
    """Average the seven normalized audio descriptors across tracks.

    Tracks without descriptors (``None``) are dropped before averaging. A
    descriptor missing from an individual track is averaged over the tracks
    that do carry it. With no usable tracks the vector is all zeros.
    """
    totals = [0.0] * AUDIO_DIMENSIONS
    counts = [0] * AUDIO_DIMENSIONS
    for features in audio_features:
        if not features:
            continue
        for idx, name in enumerate(AUDIO_FEATURES):
            raw = features.get(name)
            if raw is None:
                continue
            totals[idx] += _normalize_feature(name, float(raw))
            counts[idx] += 1
    return [_clamp_unit(total / count) if count else 0.0 for total, count in zip(totals, counts)]


def _genre_counts(artists: Iterable[Mapping[str, Any]]) -> Counter[str]:
    # Counter preserves insertion order, so most_common() breaks ties by first appearance.
    counts: Counter[str] = Counter()
    for artist in artists:
        for genre in artist.get("genres") or []:
            counts[genre] += 1
    return counts


def compute_genre_vector(artists: Sequence[Mapping[str, Any]]) -> list[float]:
    """Max-normalized frequencies of the ten most common artist genres."""
    vector = [0.0] * GENRE_DIMENSIONS
    ranked = _genre_counts(artists).most_common(GENRE_DIMENSIONS)
    if not ranked:
        return vector
    top_count = ranked[0][1]
    for idx, (_, count) in enumerate(ranked):
        vector[idx] = count / top_count
    return vector


def summarize_top_genres(artists: Sequence[Mapping[str, Any]], limit: int = TOP_GENRES_LIMIT) -> list[dict[str, Any]]:
    """Most frequent genres weighted by the share of artists exhibiting them."""
    if not artists:
        return []
    total = len(artists)
    return [
        {"name": name, "weight": count / total}
        for name, count in _genre_counts(artists).most_common(limit)
    ]


def summarize_top_artists(artists: Sequence[Mapping[str, Any]], limit: int = TOP_ARTISTS_LIMIT) -> list[dict[str, Any]]:
    summaries = []
    for artist in artists[:limit]:
        images = artist.get("images") or []
        summaries.append(
            {
                "name": artist.get("name"),
                "spotify_id": artist.get("id"),
                "image": images[0].get("url") if images else None,
                "genres": list(artist.get("genres") or []),
            }
        )
    return summaries


def summarize_top_tracks(tracks: Sequence[Mapping[str, Any]], limit: int = TOP_TRACKS_LIMIT) -> list[dict[str, Any]]:
    summaries = []
    for track in tracks[:limit]:
        artists = track.get("artists") or []
        summaries.append(
            {
                "name": track.get("name"),
                "artist": artists[0].get("name") if artists else "Unknown",
                "spotify_id": track.get("id"),
            }
        )
    return summaries


def build_profile(
    top_tracks: Sequence[Mapping[str, Any]],
    top_artists: Sequence[Mapping[str, Any]],
    audio_features: Iterable[Mapping[str, Any] | None],
) -> TasteProfileData:
    """Build the full taste profile; degrades to zero vectors on empty input."""
    embedding = compute_audio_vector(audio_features) + compute_genre_vector(top_artists)
    return TasteProfileData(
        embedding=embedding,
        top_artists=summarize_top_artists(top_artists),
        top_genres=summarize_top_genres(top_artists),
        top_tracks=summarize_top_tracks(top_tracks),
    )
