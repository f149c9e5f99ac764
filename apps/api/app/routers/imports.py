from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.deps import ANY_ROLE, EDITOR_ROLES, get_board_or_404, get_current_user, get_db, require_board_role
from app.imports.service import start_trello_import, validate_upload
from app.jobs.queue import get_job
from app.models import User
from app.rate_limit import limiter
from app.schemas import ImportStartedOut, JobOut

router = APIRouter(prefix="/imports", tags=["imports"])


def _rate_limit_or_429(*, key: str, limit: int, window_seconds: int) -> None:
  allowed, retry_after = limiter.hit(key, limit=limit, window_seconds=window_seconds)
  if allowed:
    return
  raise HTTPException(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    detail={"code": "rate_limited", "message": "Too many requests", "retryAfterSeconds": retry_after},
    headers={"Retry-After": str(retry_after)},
  )


@router.post("/trello/{board_id}", response_model=ImportStartedOut, status_code=status.HTTP_202_ACCEPTED)
async def import_from_trello(
  board_id: str,
  file: UploadFile = File(...),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ImportStartedOut:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, EDITOR_ROLES, user, db)
  validate_upload(file.filename, file.content_type, file.file)
  _rate_limit_or_429(key=f"import:user:{user.id}", limit=int(settings.rate_limit_import_per_minute), window_seconds=60)
  job = await start_trello_import(
    db,
    user_id=user.id,
    board_id=board_id,
    filename=file.filename or "trello.json",
    content_type=file.content_type,
    stream=file.file,
  )
  return ImportStartedOut(message="Import started", jobId=job.id, fileKey=job.payload["fileKey"])


@router.get("/jobs/{job_id}", response_model=JobOut)
async def import_job_status(job_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> JobOut:
  job = await get_job(db, job_id)
  if not job:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
  await require_board_role(job.payload.get("boardId", ""), ANY_ROLE, user, db)
  return JobOut(
    id=job.id,
    name=job.name,
    status=job.status,
    attempts=job.attempts,
    maxAttempts=job.max_attempts,
    lastError=job.last_error,
    result=job.result,
    createdAt=job.created_at,
    completedAt=job.completed_at,
  )
