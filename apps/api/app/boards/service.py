from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.boards.constants import BoardAction, SuccessMessage
from app.deps import get_board_or_404
from app.models import Board, BoardMember, BoardVisibility, Invite, List, Role, Task, User
from app.realtime.notifier import BoardNotifier, board_change_payload, get_notifier


async def delete_board_everything(db: AsyncSession, *, board_id: str) -> None:
  list_ids = select(List.id).where(List.board_id == board_id)
  await db.execute(delete(Task).where(Task.list_id.in_(list_ids)))
  await db.execute(delete(List).where(List.board_id == board_id))
  await db.execute(delete(Invite).where(Invite.board_id == board_id))
  await db.execute(delete(BoardMember).where(BoardMember.board_id == board_id))
  await db.execute(delete(Board).where(Board.id == board_id))


async def create_board(
  db: AsyncSession,
  *,
  owner_id: str,
  title: str,
  description: str | None = None,
  visibility: str | None = None,
) -> Board:
  b = Board(
    title=title,
    description=description,
    owner_id=owner_id,
    visibility=visibility or BoardVisibility.PRIVATE,
  )
  db.add(b)
  await db.flush()
  db.add(BoardMember(board_id=b.id, user_id=owner_id, role=Role.ADMIN))
  await db.commit()
  return b


async def list_boards_for_user(db: AsyncSession, user_id: str) -> list[tuple[Board, int]]:
  member_count = (
    select(func.count())
    .select_from(BoardMember)
    .where(BoardMember.board_id == Board.id)
    .correlate(Board)
    .scalar_subquery()
  )
  res = await db.execute(
    select(Board, member_count)
    .join(BoardMember, BoardMember.board_id == Board.id)
    .where(BoardMember.user_id == user_id, Board.is_archived.is_(False))
    .order_by(Board.updated_at.desc())
  )
  return [(b, int(count or 0)) for b, count in res.all()]


async def update_board(
  db: AsyncSession,
  *,
  board_id: str,
  actor_id: str,
  title: str | None = None,
  description: str | None = None,
  visibility: str | None = None,
  is_archived: bool | None = None,
  notifier: BoardNotifier | None = None,
) -> Board:
  b = await get_board_or_404(db, board_id)
  if title is not None:
    b.title = title
  if description is not None:
    b.description = description
  if visibility is not None:
    b.visibility = visibility
  if is_archived is not None:
    b.is_archived = is_archived
  await db.commit()
  await (notifier or get_notifier()).emit_board_change(board_id, board_change_payload(board_id, BoardAction.UPDATED, by=actor_id))
  return b


async def delete_board(db: AsyncSession, *, board_id: str) -> dict:
  await get_board_or_404(db, board_id)
  await delete_board_everything(db, board_id=board_id)
  await db.commit()
  return {"message": SuccessMessage.BOARD_DELETED}


async def list_members(db: AsyncSession, board_id: str) -> list[tuple[BoardMember, User]]:
  await get_board_or_404(db, board_id)
  res = await db.execute(
    select(BoardMember, User)
    .join(User, User.id == BoardMember.user_id)
    .where(BoardMember.board_id == board_id)
    .order_by(BoardMember.joined_at.asc())
  )
  return [(m, u) for m, u in res.all()]
