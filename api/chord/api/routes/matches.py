"""Today's match, history, blocking, and reporting."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chord.api.deps import get_current_user, get_db
from chord.core.config import settings
from chord.models.user import User
from chord.schema.match import (
    MatchHistoryItem,
    MatchStateRead,
    ReportCreate,
    ReportRead,
    TodayMatchResponse,
)
from chord.services import match_service

router = APIRouter()


@router.get("/today", response_model=TodayMatchResponse)
async def read_today_match(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> TodayMatchResponse:
    """Return today's active match, or ``{"match": null}`` when there is none."""
    return TodayMatchResponse(match=await match_service.get_today_match(session, current_user.id))


@router.get("/history", response_model=list[MatchHistoryItem])
async def read_match_history(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    limit: int = Query(settings.match_history_limit, ge=1, le=100),
) -> list[MatchHistoryItem]:
    return await match_service.get_match_history(session, current_user.id, limit=limit)


@router.post("/{match_id}/block", response_model=MatchStateRead)
async def block_match(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MatchStateRead:
    state = await match_service.block(session, match_id, current_user.id)
    return MatchStateRead(match_id=match_id, state=state)


@router.post("/{match_id}/report", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
async def report_match(
    match_id: uuid.UUID,
    payload: ReportCreate | None = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ReportRead:
    record = await match_service.report(session, match_id, current_user.id, payload.reason if payload else None)
    return ReportRead(id=record.id, match_id=record.match_id, reason=record.reason, created_at=record.created_at)
