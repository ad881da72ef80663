"""Pure taste-profile and scoring functions plus the candidate source contract."""

from .candidates import Candidate, CandidateSource, DatabaseCandidateSource, Location
from .embedding import EMBEDDING_DIMENSIONS, TasteProfileData, build_profile
from .scoring import match_score, similarity

__all__ = [
    "Candidate",
    "CandidateSource",
    "DatabaseCandidateSource",
    "EMBEDDING_DIMENSIONS",
    "Location",
    "TasteProfileData",
    "build_profile",
    "match_score",
    "similarity",
]
