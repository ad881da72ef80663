from . import (
    chat_service,
    match_service,
    matching_service,
    music_profile_service,
    spotify_service,
    user_service,
)

__all__ = [
    "chat_service",
    "match_service",
    "matching_service",
    "music_profile_service",
    "spotify_service",
    "user_service",
]
"""Service-layer helpers for API operations and background jobs."""
