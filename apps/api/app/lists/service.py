from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import BadRequestError, NotFoundError
from app.models import Board, List, Task
from app.ordering import (
  LIST_POSITION_BASE,
  check_position,
  close_gap,
  count_children,
  lock_row,
  next_list_position,
  shift_for_move,
)
from app.realtime.notifier import BoardNotifier, board_change_payload, get_notifier

logger = logging.getLogger(__name__)

LIST_NOT_FOUND = "List not found"
LIST_HAS_TASKS = "Cannot delete a list that contains tasks"


async def get_list_or_404(db: AsyncSession, list_id: str) -> List:
  res = await db.execute(select(List).where(List.id == list_id))
  lst = res.scalar_one_or_none()
  if not lst:
    raise NotFoundError(LIST_NOT_FOUND)
  return lst


async def _emit(notifier: BoardNotifier | None, board_id: str, action: str, **context: Any) -> None:
  await (notifier or get_notifier()).emit_board_change(board_id, board_change_payload(board_id, action, **context))


async def create_list(
  db: AsyncSession,
  *,
  board_id: str,
  title: str,
  position: int | None = None,
  notifier: BoardNotifier | None = None,
) -> List:
  await lock_row(db, Board, board_id)
  if position is None:
    position = await next_list_position(db, board_id)
  lst = List(board_id=board_id, title=title, position=position)
  db.add(lst)
  await db.commit()
  await _emit(notifier, board_id, "created list", listId=lst.id)
  return lst


async def create_lists_bulk(
  db: AsyncSession,
  board_id: str,
  records: Sequence[dict[str, Any]],
  *,
  notifier: BoardNotifier | None = None,
) -> int:
  """
  Inserts `records` ({title, externalId?, isArchived?}) after the board's last list,
  keeping their order. Returns the number of rows written.
  """
  if not records:
    return 0
  await lock_row(db, Board, board_id)
  start = await next_list_position(db, board_id)
  db.add_all(
    [
      List(
        board_id=board_id,
        external_id=r.get("externalId"),
        title=r["title"],
        position=start + i,
        is_archived=bool(r.get("isArchived", False)),
      )
      for i, r in enumerate(records)
    ]
  )
  await db.commit()
  await _emit(notifier, board_id, f"created {len(records)} lists")
  return len(records)


async def list_lists(db: AsyncSession, board_id: str) -> list[List]:
  res = await db.execute(
    select(List).where(List.board_id == board_id, List.is_archived.is_(False)).order_by(List.position.asc())
  )
  return list(res.scalars().all())


async def get_list_with_tasks(db: AsyncSession, list_id: str) -> tuple[List, list[Task]]:
  lst = await get_list_or_404(db, list_id)
  res = await db.execute(select(Task).where(Task.list_id == list_id).order_by(Task.position.asc()))
  return lst, list(res.scalars().all())


async def lists_for_mapping(db: AsyncSession, board_id: str) -> dict[str, str]:
  """External id -> list id for every list of the board that came from an import."""
  res = await db.execute(select(List.external_id, List.id).where(List.board_id == board_id))
  return {ext: lid for ext, lid in res.all() if ext}


async def update_list(
  db: AsyncSession,
  *,
  list_id: str,
  title: str | None = None,
  is_archived: bool | None = None,
  notifier: BoardNotifier | None = None,
) -> List:
  lst = await get_list_or_404(db, list_id)
  if title is not None:
    lst.title = title
  if is_archived is not None:
    lst.is_archived = is_archived
  await db.commit()
  await _emit(notifier, lst.board_id, "updated list", listId=lst.id)
  return lst


async def update_list_position(
  db: AsyncSession,
  *,
  list_id: str,
  new_position: int,
  notifier: BoardNotifier | None = None,
) -> List:
  lst = await get_list_or_404(db, list_id)
  await lock_row(db, Board, lst.board_id)
  await db.refresh(lst)
  count = await count_children(db, List.board_id, lst.board_id)
  check_position(new_position, first=LIST_POSITION_BASE, last=count + LIST_POSITION_BASE - 1)
  await shift_for_move(db, List.board_id, lst.board_id, old_position=lst.position, new_position=new_position)
  lst.position = new_position
  await db.commit()
  await _emit(notifier, lst.board_id, "updated list position", listId=lst.id)
  return lst


async def delete_list(db: AsyncSession, *, list_id: str, notifier: BoardNotifier | None = None) -> dict:
  lst = await get_list_or_404(db, list_id)
  board_id = lst.board_id
  await lock_row(db, Board, board_id)

  res = await db.execute(
    select(func.count()).select_from(Task).where(Task.list_id == list_id, Task.is_archived.is_(False))
  )
  if int(res.scalar_one() or 0) > 0:
    raise BadRequestError(LIST_HAS_TASKS)

  position = lst.position
  await db.execute(delete(Task).where(Task.list_id == list_id))
  await db.execute(delete(List).where(List.id == list_id))
  await close_gap(db, List.board_id, board_id, position)
  await db.commit()
  logger.info("List %s removed from board %s", list_id, board_id)
  await _emit(notifier, board_id, "deleted list", listId=list_id)
  return {"message": "List removed successfully"}
