"""Stateless scoring helpers for the daily matching run."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime, timezone

from chord.core.errors import DimensionMismatchError

MUSIC_WEIGHT = 0.6
DISTANCE_WEIGHT = 0.3
ACTIVITY_WEIGHT = 0.1
DEFAULT_MAX_DISTANCE_KM = 50.0
EARTH_RADIUS_KM = 6371.0088


def similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    if len(a) != len(b):
        raise DimensionMismatchError(f"Embeddings must have the same dimension ({len(a)} != {len(b)})")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    if denominator == 0:
        return 0.0
    return dot / denominator


def distance_score(distance_km: float, max_distance_km: float = DEFAULT_MAX_DISTANCE_KM) -> float:
    """1.0 at zero distance, falling linearly to 0.0 at ``max_distance_km``."""
    if max_distance_km <= 0:
        return 0.0
    return 1.0 - min(max(distance_km, 0.0) / max_distance_km, 1.0)


def match_score(
    music_similarity: float,
    distance_km: float,
    activity_score: float,
    max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
) -> float:
    """Weighted blend of taste similarity, proximity, and recent activity."""
    return (
        MUSIC_WEIGHT * music_similarity
        + DISTANCE_WEIGHT * distance_score(distance_km, max_distance_km)
        + ACTIVITY_WEIGHT * activity_score
    )


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def activity_score(last_active_at: datetime | None, now: datetime, *, decay_days: int = 30) -> float:
    """Recency of activity in [0, 1].

    Full credit inside the last day, then linear decay to zero at
    ``decay_days``. Unknown activity scores zero.
    """
    if last_active_at is None or decay_days <= 0:
        return 0.0
    if last_active_at.tzinfo is None:
        last_active_at = last_active_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    idle_days = (now - last_active_at).total_seconds() / 86400
    if idle_days <= 1:
        return 1.0
    if idle_days >= decay_days:
        return 0.0
    return 1.0 - (idle_days - 1) / (decay_days - 1)
