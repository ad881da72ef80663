"""SQLAlchemy ORM models for the Chord API."""

from chord.models.chat import Message
from chord.models.match import Block, Match, MatchDayClaim, MatchState, Report, make_pair_key
from chord.models.provider_token import ProviderToken
from chord.models.user import User, UserTasteProfile

__all__ = [
    "Block",
    "Match",
    "MatchDayClaim",
    "MatchState",
    "Message",
    "ProviderToken",
    "Report",
    "User",
    "UserTasteProfile",
    "make_pair_key",
]
