"""
Board membership: removal with ownership succession, and role changes.

Removing a member is decided up front into one of five outcomes
(`plan_member_removal`) and then applied in a single transaction
(`apply_member_removal`):

  owner leaves, another ADMIN exists   -> TransferToAdmin
  owner leaves, only MEMBERs remain    -> TransferToMember (promoted to ADMIN)
  owner leaves, nobody eligible        -> DeleteBoard
  non-owner removes themself           -> LeaveBoard
  ADMIN removes another non-owner      -> RemoveOther

OBSERVERs are never eligible to inherit a board. Candidates are picked by
earliest `joined_at`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.boards.constants import BoardAction, ErrorMessage, SuccessMessage
from app.boards.service import delete_board_everything
from app.deps import get_board_or_404
from app.errors import BadRequestError, ForbiddenError, NotFoundError
from app.models import Board, BoardMember, Role
from app.ordering import lock_row
from app.realtime.notifier import BoardNotifier, board_change_payload, get_notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferToAdmin:
  board_id: str
  departing_user_id: str
  new_owner_id: str


@dataclass(frozen=True)
class TransferToMember:
  board_id: str
  departing_user_id: str
  new_owner_id: str


@dataclass(frozen=True)
class DeleteBoard:
  board_id: str
  departing_user_id: str


@dataclass(frozen=True)
class LeaveBoard:
  board_id: str
  user_id: str


@dataclass(frozen=True)
class RemoveOther:
  board_id: str
  user_id: str
  removed_by: str


RemovalPlan = TransferToAdmin | TransferToMember | DeleteBoard | LeaveBoard | RemoveOther


async def find_member(db: AsyncSession, board_id: str, user_id: str) -> BoardMember | None:
  res = await db.execute(select(BoardMember).where(BoardMember.board_id == board_id, BoardMember.user_id == user_id))
  return res.scalar_one_or_none()


async def get_member_or_404(db: AsyncSession, board_id: str, user_id: str) -> BoardMember:
  m = await find_member(db, board_id, user_id)
  if not m:
    raise NotFoundError(ErrorMessage.MEMBER_NOT_FOUND)
  return m


async def _oldest_with_role(db: AsyncSession, board_id: str, role: str, *, exclude_user_id: str) -> BoardMember | None:
  res = await db.execute(
    select(BoardMember)
    .where(BoardMember.board_id == board_id, BoardMember.role == role, BoardMember.user_id != exclude_user_id)
    .order_by(BoardMember.joined_at.asc())
    .limit(1)
  )
  return res.scalar_one_or_none()


async def count_admins(db: AsyncSession, board_id: str) -> int:
  res = await db.execute(
    select(func.count()).select_from(BoardMember).where(BoardMember.board_id == board_id, BoardMember.role == Role.ADMIN)
  )
  return int(res.scalar_one() or 0)


async def plan_member_removal(db: AsyncSession, board: Board, target_user_id: str, requester_id: str) -> RemovalPlan:
  if target_user_id == board.owner_id:
    if requester_id != target_user_id:
      raise ForbiddenError(ErrorMessage.CANNOT_REMOVE_OWNER)
    next_admin = await _oldest_with_role(db, board.id, Role.ADMIN, exclude_user_id=target_user_id)
    if next_admin:
      return TransferToAdmin(board_id=board.id, departing_user_id=target_user_id, new_owner_id=next_admin.user_id)
    next_member = await _oldest_with_role(db, board.id, Role.MEMBER, exclude_user_id=target_user_id)
    if next_member:
      return TransferToMember(board_id=board.id, departing_user_id=target_user_id, new_owner_id=next_member.user_id)
    return DeleteBoard(board_id=board.id, departing_user_id=target_user_id)

  await get_member_or_404(db, board.id, target_user_id)
  if requester_id == target_user_id:
    return LeaveBoard(board_id=board.id, user_id=target_user_id)
  requester = await find_member(db, board.id, requester_id)
  if not requester or requester.role != Role.ADMIN:
    raise ForbiddenError(ErrorMessage.ONLY_ADMINS_CAN_REMOVE)
  return RemoveOther(board_id=board.id, user_id=target_user_id, removed_by=requester_id)


async def _delete_membership(db: AsyncSession, board_id: str, user_id: str) -> None:
  await db.execute(delete(BoardMember).where(BoardMember.board_id == board_id, BoardMember.user_id == user_id))


async def apply_member_removal(db: AsyncSession, plan: RemovalPlan) -> str:
  """Runs the plan's writes and commits them together. Returns the user-facing message."""
  if isinstance(plan, (TransferToAdmin, TransferToMember)):
    if isinstance(plan, TransferToMember):
      await db.execute(
        update(BoardMember)
        .where(BoardMember.board_id == plan.board_id, BoardMember.user_id == plan.new_owner_id)
        .values(role=Role.ADMIN)
      )
    await db.execute(update(Board).where(Board.id == plan.board_id).values(owner_id=plan.new_owner_id))
    await _delete_membership(db, plan.board_id, plan.departing_user_id)
    await db.commit()
    logger.info("Board %s ownership moved %s -> %s", plan.board_id, plan.departing_user_id, plan.new_owner_id)
    if isinstance(plan, TransferToMember):
      return SuccessMessage.OWNERSHIP_TRANSFERRED_MEMBER
    return SuccessMessage.OWNERSHIP_TRANSFERRED_ADMIN

  if isinstance(plan, DeleteBoard):
    await delete_board_everything(db, board_id=plan.board_id)
    await db.commit()
    logger.info("Board %s deleted, owner %s was the last eligible member", plan.board_id, plan.departing_user_id)
    return SuccessMessage.BOARD_DELETED_ONLY_OWNER

  await _delete_membership(db, plan.board_id, plan.user_id)
  await db.commit()
  return SuccessMessage.MEMBER_REMOVED


def _removal_event(plan: RemovalPlan) -> dict:
  if isinstance(plan, (TransferToAdmin, TransferToMember, DeleteBoard)):
    return board_change_payload(
      plan.board_id,
      BoardAction.MEMBER_REMOVED,
      memberUserId=plan.departing_user_id,
      by=plan.departing_user_id,
      newOwnerId=getattr(plan, "new_owner_id", None),
      boardDeleted=True if isinstance(plan, DeleteBoard) else None,
    )
  if isinstance(plan, RemoveOther):
    return board_change_payload(plan.board_id, BoardAction.MEMBER_REMOVED, memberUserId=plan.user_id, by=plan.removed_by)
  return board_change_payload(plan.board_id, BoardAction.MEMBER_REMOVED, memberUserId=plan.user_id, by=plan.user_id)


async def remove_member(
  db: AsyncSession,
  *,
  board_id: str,
  target_user_id: str,
  requester_id: str,
  notifier: BoardNotifier | None = None,
) -> dict:
  await get_board_or_404(db, board_id)
  board = await lock_row(db, Board, board_id)
  plan = await plan_member_removal(db, board, target_user_id, requester_id)
  message = await apply_member_removal(db, plan)
  await (notifier or get_notifier()).emit_board_change(board_id, _removal_event(plan))
  return {"message": message}


async def change_member_role(
  db: AsyncSession,
  *,
  board_id: str,
  target_user_id: str,
  requester_id: str,
  new_role: str,
  notifier: BoardNotifier | None = None,
) -> BoardMember:
  board = await get_board_or_404(db, board_id)
  if target_user_id == board.owner_id:
    raise ForbiddenError(ErrorMessage.CANNOT_CHANGE_OWNER_ROLE)

  m = await get_member_or_404(db, board_id, target_user_id)
  old_role = m.role
  if old_role == Role.ADMIN and new_role != Role.ADMIN:
    if await count_admins(db, board_id) <= 1:
      raise BadRequestError(ErrorMessage.CANNOT_DEMOTE_ONLY_ADMIN)

  m.role = new_role
  await db.commit()
  await (notifier or get_notifier()).emit_board_change(
    board_id,
    board_change_payload(
      board_id,
      BoardAction.MEMBER_ROLE_CHANGED,
      memberUserId=target_user_id,
      oldRole=str(old_role),
      newRole=str(new_role),
      by=requester_id,
    ),
  )
  return m
