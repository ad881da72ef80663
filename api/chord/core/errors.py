"""Domain errors raised by services and mapped to HTTP responses in main.

Invariants:
- An unknown match is always NotFoundError.
- An existing match the caller is not part of is always AuthorizationError.
"""

from __future__ import annotations

from fastapi import status


class ChordError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChordError):
    """Malformed input; never retried."""

    status_code = status.HTTP_400_BAD_REQUEST


class DimensionMismatchError(ValidationError):
    """Embeddings of different lengths were compared."""


class NotFoundError(ChordError):
    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(ChordError):
    """Actor is not allowed to perform the transition."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(ChordError):
    """Lost a race or acted on stale state; callers may retry."""

    status_code = status.HTTP_409_CONFLICT
