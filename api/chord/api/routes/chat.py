"""Chat and identity reveal endpoints for a match."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from chord.api.deps import get_current_user, get_db
from chord.models.user import User
from chord.schema.chat import MessageCreate, MessageRead
from chord.schema.match import MatchStateRead
from chord.services import chat_service, match_service

router = APIRouter()


@router.get("/{match_id}/messages", response_model=list[MessageRead])
async def list_messages(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """List messages for a match, oldest first."""
    return await chat_service.list_messages(session, match_id, current_user.id)


@router.post("/{match_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    match_id: uuid.UUID,
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return await chat_service.send_message(session, match_id, current_user.id, payload.content)


@router.post("/{match_id}/read")
async def mark_read(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> dict:
    return {"updated": await chat_service.mark_read(session, match_id, current_user.id)}


@router.post("/{match_id}/reveal-request", response_model=MatchStateRead)
async def request_reveal(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MatchStateRead:
    state = await match_service.request_reveal(session, match_id, current_user.id)
    return MatchStateRead(match_id=match_id, state=state)


@router.post("/{match_id}/reveal-accept", response_model=MatchStateRead)
async def accept_reveal(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MatchStateRead:
    state = await match_service.accept_reveal(session, match_id, current_user.id)
    return MatchStateRead(match_id=match_id, state=state)
