from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.analysis.service import basic_summary, completed_summary
from app.deps import ANY_ROLE, get_board_or_404, get_current_user, get_db, require_board_role
from app.models import User
from app.schemas import BasicSummaryOut, CompletedSummaryOut

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.get("/boards/{board_id}/summary", response_model=BasicSummaryOut)
async def board_summary(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ANY_ROLE, user, db)
  return await basic_summary(db, board_id)


@router.get("/boards/{board_id}/completed", response_model=CompletedSummaryOut)
async def board_completed(
  board_id: str,
  startDate: datetime | date = Query(...),
  endDate: datetime | date = Query(...),
  userId: str | None = Query(default=None),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ANY_ROLE, user, db)
  return await completed_summary(db, board_id, start_date=startDate, end_date=endDate, user_id=userId)
