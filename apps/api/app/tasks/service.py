from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, time, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.boards.membership import find_member
from app.errors import BadRequestError, NotFoundError
from app.models import List, Task, TaskStatus, utcnow
from app.ordering import (
  TASK_POSITION_BASE,
  check_position,
  close_gap,
  count_children,
  lock_row,
  next_task_position,
  open_slot,
  shift_for_move,
)
from app.realtime.notifier import BoardNotifier, board_change_payload, get_notifier

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"
LIST_NOT_FOUND = "List not found"
TARGET_LIST_NOT_FOUND = "Target list not found"
ASSIGNEE_NOT_MEMBER = "Assignee is not a member of this board"

_UNSET: Any = object()


async def get_task_or_404(db: AsyncSession, task_id: str) -> Task:
  res = await db.execute(select(Task).where(Task.id == task_id))
  t = res.scalar_one_or_none()
  if not t:
    raise NotFoundError(TASK_NOT_FOUND)
  return t


async def _list_or_404(db: AsyncSession, list_id: str, message: str = LIST_NOT_FOUND) -> List:
  res = await db.execute(select(List).where(List.id == list_id))
  lst = res.scalar_one_or_none()
  if not lst:
    raise NotFoundError(message)
  return lst


async def _check_assignee(db: AsyncSession, board_id: str, assignee_id: str | None) -> None:
  if assignee_id and not await find_member(db, board_id, assignee_id):
    raise BadRequestError(ASSIGNEE_NOT_MEMBER)


async def _emit(notifier: BoardNotifier | None, board_id: str, action: str, **context: Any) -> None:
  await (notifier or get_notifier()).emit_board_change(board_id, board_change_payload(board_id, action, **context))


def completed_at_for(status: str, *, previous_status: str | None = None, previous: datetime | None = None) -> datetime | None:
  """completedAt is stamped on the transition into DONE and cleared on the way out."""
  if status == TaskStatus.DONE:
    if previous_status == TaskStatus.DONE and previous is not None:
      return previous
    return utcnow()
  return None


async def create_task(
  db: AsyncSession,
  *,
  creator_id: str,
  list_id: str,
  title: str,
  description: str | None = None,
  status: str | None = None,
  due_date: datetime | None = None,
  assigned_to_id: str | None = None,
  notifier: BoardNotifier | None = None,
) -> Task:
  lst = await _list_or_404(db, list_id)
  await _check_assignee(db, lst.board_id, assigned_to_id)
  await lock_row(db, List, list_id)

  status = status or TaskStatus.TODO
  t = Task(
    creator_id=creator_id,
    list_id=list_id,
    title=title,
    description=description,
    position=await next_task_position(db, list_id),
    status=status,
    due_date=due_date,
    assigned_to_id=assigned_to_id or None,
    completed_at=completed_at_for(status),
  )
  db.add(t)
  await db.commit()
  await _emit(notifier, lst.board_id, "created task", taskId=t.id)
  return t


async def create_tasks_bulk(
  db: AsyncSession,
  user_id: str,
  list_id: str,
  records: Sequence[dict[str, Any]],
  *,
  notifier: BoardNotifier | None = None,
) -> int:
  """
  Appends `records` ({title, externalId?, description?, status, isArchived?, dueDate?})
  to the end of the list in order. Returns the number of rows written.
  """
  if not records:
    return 0
  lst = await _list_or_404(db, list_id)
  await lock_row(db, List, list_id)
  start = await next_task_position(db, list_id)
  db.add_all(
    [
      Task(
        list_id=list_id,
        creator_id=user_id,
        external_id=r.get("externalId"),
        title=r["title"],
        description=r.get("description") or None,
        status=r["status"],
        position=start + i,
        is_archived=bool(r.get("isArchived", False)),
        due_date=r.get("dueDate"),
        assigned_to_id=None,
        completed_at=completed_at_for(r["status"]),
      )
      for i, r in enumerate(records)
    ]
  )
  await db.commit()
  await _emit(notifier, lst.board_id, "imported tasks", listId=list_id)
  return len(records)


async def update_task(
  db: AsyncSession,
  *,
  task_id: str,
  title: str | None = None,
  description: str | None = None,
  status: str | None = None,
  due_date: datetime | None = _UNSET,
  assigned_to_id: str | None = _UNSET,
  is_archived: bool | None = None,
  notifier: BoardNotifier | None = None,
) -> Task:
  t = await get_task_or_404(db, task_id)
  lst = await _list_or_404(db, t.list_id)

  if title is not None:
    t.title = title
  if description is not None:
    t.description = description
  if is_archived is not None:
    t.is_archived = is_archived
  if due_date is not _UNSET:
    t.due_date = due_date
  if assigned_to_id is not _UNSET:
    await _check_assignee(db, lst.board_id, assigned_to_id)
    t.assigned_to_id = assigned_to_id or None
  if status is not None and status != t.status:
    t.completed_at = completed_at_for(status, previous_status=t.status, previous=t.completed_at)
    t.status = status

  await db.commit()
  await _emit(notifier, lst.board_id, "updated task", taskId=t.id)
  return t


async def update_task_position(
  db: AsyncSession,
  *,
  task_id: str,
  new_position: int,
  notifier: BoardNotifier | None = None,
) -> Task:
  t = await get_task_or_404(db, task_id)
  lst = await _list_or_404(db, t.list_id)
  await lock_row(db, List, lst.id)
  await db.refresh(t)
  count = await count_children(db, Task.list_id, lst.id)
  check_position(new_position, first=TASK_POSITION_BASE, last=count - 1)
  await shift_for_move(db, Task.list_id, lst.id, old_position=t.position, new_position=new_position)
  t.position = new_position
  await db.commit()
  await _emit(notifier, lst.board_id, "updated task position", taskId=t.id)
  return t


async def move_task_to_list(
  db: AsyncSession,
  *,
  task_id: str,
  new_list_id: str,
  new_position: int,
  notifier: BoardNotifier | None = None,
) -> Task:
  t = await get_task_or_404(db, task_id)
  target = await _list_or_404(db, new_list_id, TARGET_LIST_NOT_FOUND)
  source = await _list_or_404(db, t.list_id, "Source list not found")

  # Lock both lists in id order so two opposite moves cannot deadlock.
  for lid in sorted({source.id, target.id}):
    await lock_row(db, List, lid)
  await db.refresh(t)

  old_position = t.position
  count = await count_children(db, Task.list_id, target.id)
  if source.id == target.id:
    check_position(new_position, first=TASK_POSITION_BASE, last=count - 1)
    await shift_for_move(db, Task.list_id, source.id, old_position=old_position, new_position=new_position)
  else:
    check_position(new_position, first=TASK_POSITION_BASE, last=count)
    # an assignee who is not on the destination board is dropped
    if source.board_id != target.board_id and t.assigned_to_id:
      if not await find_member(db, target.board_id, t.assigned_to_id):
        t.assigned_to_id = None
    await close_gap(db, Task.list_id, source.id, old_position)
    await open_slot(db, Task.list_id, target.id, new_position)
    t.list_id = target.id
  t.position = new_position
  await db.commit()
  for board_id in dict.fromkeys([source.board_id, target.board_id]):
    await _emit(notifier, board_id, "moved task between lists", taskId=t.id, fromListId=source.id, toListId=target.id)
  return t


async def delete_task(db: AsyncSession, *, task_id: str, notifier: BoardNotifier | None = None) -> None:
  t = await get_task_or_404(db, task_id)
  lst = await _list_or_404(db, t.list_id)
  await lock_row(db, List, lst.id)
  position = t.position
  await db.execute(delete(Task).where(Task.id == task_id))
  await close_gap(db, Task.list_id, lst.id, position)
  await db.commit()
  await _emit(notifier, lst.board_id, "deleted task", taskId=task_id)


async def tasks_due_today(db: AsyncSession, user_id: str, *, now: datetime | None = None) -> list[tuple[Task, List]]:
  now = now or utcnow()
  end_of_day = datetime.combine(now.date(), time.max, tzinfo=now.tzinfo or timezone.utc)
  res = await db.execute(
    select(Task, List)
    .join(List, List.id == Task.list_id)
    .where(
      Task.creator_id == user_id,
      Task.status.in_([TaskStatus.TODO, TaskStatus.IN_PROGRESS]),
      Task.due_date.is_not(None),
      Task.due_date <= end_of_day,
    )
    .order_by(Task.due_date.asc())
  )
  return [(t, lst) for t, lst in res.all()]
