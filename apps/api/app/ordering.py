"""
Dense position bookkeeping for ordered children (lists in a board, tasks in a list).

Every helper issues a single UPDATE against the sibling set selected by
`parent_column == parent_id`; callers run the shift and the final position
write in the same transaction and commit once.

Lists are 1-based (append at max + 1, first list is 1). Tasks are 0-based
(append at the current count).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from app.errors import BadRequestError
from app.models import List, Task

LIST_POSITION_BASE = 1
TASK_POSITION_BASE = 0


async def lock_row(db: AsyncSession, model: Any, row_id: str) -> Any | None:
  # FOR UPDATE on the parent serializes concurrent reorders of its children (no-op on SQLite).
  res = await db.execute(select(model).where(model.id == row_id).with_for_update())
  return res.scalar_one_or_none()


async def next_list_position(db: AsyncSession, board_id: str) -> int:
  res = await db.execute(select(func.max(List.position)).where(List.board_id == board_id))
  max_pos = res.scalar_one()
  return (max_pos + 1) if max_pos is not None else LIST_POSITION_BASE


async def count_children(db: AsyncSession, parent_column: InstrumentedAttribute, parent_id: str) -> int:
  model = parent_column.class_
  res = await db.execute(select(func.count()).select_from(model).where(parent_column == parent_id))
  return int(res.scalar_one() or 0)


async def next_task_position(db: AsyncSession, list_id: str) -> int:
  return await count_children(db, Task.list_id, list_id)


def check_position(position: int, *, first: int, last: int) -> None:
  if not first <= position <= last:
    raise BadRequestError(f"Position must be between {first} and {last}")


async def shift_for_move(
  db: AsyncSession,
  parent_column: InstrumentedAttribute,
  parent_id: str,
  *,
  old_position: int,
  new_position: int,
) -> None:
  model = parent_column.class_
  if new_position < old_position:
    await db.execute(
      update(model)
      .where(parent_column == parent_id, model.position >= new_position, model.position < old_position)
      .values(position=model.position + 1)
    )
  elif new_position > old_position:
    await db.execute(
      update(model)
      .where(parent_column == parent_id, model.position > old_position, model.position <= new_position)
      .values(position=model.position - 1)
    )


async def close_gap(db: AsyncSession, parent_column: InstrumentedAttribute, parent_id: str, position: int) -> None:
  model = parent_column.class_
  await db.execute(
    update(model).where(parent_column == parent_id, model.position > position).values(position=model.position - 1)
  )


async def open_slot(db: AsyncSession, parent_column: InstrumentedAttribute, parent_id: str, position: int) -> None:
  model = parent_column.class_
  await db.execute(
    update(model).where(parent_column == parent_id, model.position >= position).values(position=model.position + 1)
  )
