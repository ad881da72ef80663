"""Chat message schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from chord.models.chat import MAX_MESSAGE_LENGTH

OWN_SENDER = "me"


class MessageCreate(BaseModel):
    content: str = Field(max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        # The length limit applies to the trimmed text that gets stored.
        return value.strip() if isinstance(value, str) else value


class MessageRead(BaseModel):
    """A message as one participant sees it.

    ``sender`` is ``"me"`` for the viewer's own messages, the counterpart's
    pseudonym until identities are revealed, and their real id afterwards.
    """

    id: UUID
    match_id: UUID
    sender: str
    content: str
    is_read: bool
    created_at: datetime
