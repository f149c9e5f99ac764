from __future__ import annotations

from datetime import date, datetime, time, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import BadRequestError
from app.models import List, Task, TaskStatus

SUMMARY_STATUSES = (TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.DONE)


def _percentage(count: int, total: int) -> float:
  return round(count / total * 100, 2) if total > 0 else 0


async def basic_summary(db: AsyncSession, board_id: str) -> dict:
  res = await db.execute(
    select(Task.status).join(List, List.id == Task.list_id).where(List.board_id == board_id, Task.is_archived.is_(False))
  )
  statuses = list(res.scalars().all())
  total = len(statuses)
  counts = {s: 0 for s in SUMMARY_STATUSES}
  for s in statuses:
    if s in counts:
      counts[s] += 1
  return {
    "total": total,
    "statusCounts": [
      {"status": str(s), "count": c, "percentage": _percentage(c, total)} for s, c in counts.items()
    ],
  }


def _as_utc(value: date | datetime, *, end_of_day: bool = False) -> datetime:
  if not isinstance(value, datetime):
    value = datetime.combine(value, time.max if end_of_day else time.min)
  elif end_of_day:
    value = datetime.combine(value.date(), time.max, tzinfo=value.tzinfo)
  if value.tzinfo is None:
    value = value.replace(tzinfo=timezone.utc)
  return value


async def completed_summary(
  db: AsyncSession,
  board_id: str,
  *,
  start_date: date | datetime,
  end_date: date | datetime,
  user_id: str | None = None,
) -> dict:
  start = _as_utc(start_date)
  if start > _as_utc(end_date):
    raise BadRequestError("Start date must be before end date.")
  end = _as_utc(end_date, end_of_day=True)

  q = (
    select(Task.completed_at)
    .join(List, List.id == Task.list_id)
    .where(
      List.board_id == board_id,
      Task.status == TaskStatus.DONE,
      Task.completed_at.is_not(None),
      Task.completed_at >= start,
      Task.completed_at <= end,
    )
  )
  if user_id:
    q = q.where(Task.assigned_to_id == user_id)
  res = await db.execute(q)

  daily: dict[str, int] = {}
  total = 0
  for completed_at in res.scalars().all():
    total += 1
    key = completed_at.date().isoformat()
    daily[key] = daily.get(key, 0) + 1
  return {
    "total": total,
    "dailyCounts": [{"date": d, "count": daily[d]} for d in sorted(daily)],
  }
