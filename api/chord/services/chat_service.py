"""Messages exchanged between the two participants of an active match."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.errors import ConflictError, ValidationError
from chord.models.chat import MAX_MESSAGE_LENGTH, Message
from chord.models.match import Match
from chord.schema.chat import OWN_SENDER, MessageRead
from chord.services.match_service import get_match_for_participant, pseudonymous_id

logger = logging.getLogger("chord.services.chat")


def _sender_label(message: Message, match: Match, viewer_id: uuid.UUID) -> str:
    if message.sender_id == viewer_id:
        return OWN_SENDER
    if match.identities_revealed:
        return str(message.sender_id)
    return pseudonymous_id(message.sender_id)


def _view(message: Message, match: Match, viewer_id: uuid.UUID) -> MessageRead:
    return MessageRead(
        id=message.id,
        match_id=message.match_id,
        sender=_sender_label(message, match, viewer_id),
        content=message.content,
        is_read=message.is_read,
        created_at=message.created_at,
    )


async def list_messages(session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID) -> list[MessageRead]:
    match = await get_match_for_participant(session, match_id, user_id)
    if not match.is_active:
        raise ConflictError("Match is no longer active")
    result = await session.scalars(
        select(Message).where(Message.match_id == match.id).order_by(Message.created_at.asc())
    )
    return [_view(message, match, user_id) for message in result.all()]


async def send_message(
    session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID, content: str
) -> MessageRead:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message content required")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")
    match = await get_match_for_participant(session, match_id, user_id)
    if not match.is_active:
        raise ConflictError("Match is no longer active")
    message = Message(match_id=match.id, sender_id=user_id, content=text)
    session.add(message)
    await session.commit()
    await session.refresh(message)
    logger.debug("Message %s stored on match %s", message.id, match.id)
    return _view(message, match, user_id)


async def mark_read(session: AsyncSession, match_id: uuid.UUID, user_id: uuid.UUID) -> int:
    """Mark the counterpart's messages as read; returns how many changed."""
    match = await get_match_for_participant(session, match_id, user_id)
    result = await session.execute(
        update(Message)
        .where(Message.match_id == match.id, Message.sender_id != user_id, Message.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount or 0
