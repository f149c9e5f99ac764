from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.boards.constants import BoardAction, ErrorMessage, SuccessMessage
from app.boards.membership import find_member
from app.deps import get_board_or_404
from app.errors import BadRequestError, ForbiddenError, NotFoundError
from app.models import Board, BoardMember, Invite, InviteStatus, Role, User
from app.realtime.notifier import BoardNotifier, board_change_payload, get_notifier

logger = logging.getLogger(__name__)


async def invite_user(
  db: AsyncSession,
  *,
  board_id: str,
  sender_id: str,
  user_name: str,
  role: str | None = None,
  notifier: BoardNotifier | None = None,
) -> Invite:
  await get_board_or_404(db, board_id)
  sender = await find_member(db, board_id, sender_id)
  if not sender or sender.role != Role.ADMIN:
    raise ForbiddenError(ErrorMessage.ONLY_ADMINS_CAN_INVITE)

  res = await db.execute(select(User).where(User.user_name == user_name))
  recipient = res.scalar_one_or_none()
  if not recipient:
    raise NotFoundError(ErrorMessage.RECIPIENT_NOT_FOUND)

  res = await db.execute(
    select(Invite.id).where(
      Invite.board_id == board_id,
      Invite.recipient_id == recipient.id,
      Invite.status_invite == InviteStatus.PENDING,
    )
  )
  if res.scalar_one_or_none():
    raise BadRequestError(ErrorMessage.PENDING_INVITE_EXISTS)
  if await find_member(db, board_id, recipient.id):
    raise BadRequestError(ErrorMessage.ALREADY_MEMBER)

  inv = Invite(
    board_id=board_id,
    sender_id=sender_id,
    recipient_id=recipient.id,
    email=recipient.email,
    role=role or Role.OBSERVER,
    status_invite=InviteStatus.PENDING,
  )
  db.add(inv)
  await db.commit()
  logger.info("Invite %s sent on board %s to %s", inv.id, board_id, recipient.id)
  await (notifier or get_notifier()).notify_user(recipient.id)
  return inv


async def respond_to_invite(
  db: AsyncSession,
  *,
  board_id: str,
  recipient_id: str,
  invite_id: str,
  accept: bool,
  notifier: BoardNotifier | None = None,
) -> dict:
  res = await db.execute(select(Invite).where(Invite.id == invite_id, Invite.board_id == board_id))
  inv = res.scalar_one_or_none()
  if not inv:
    raise NotFoundError(ErrorMessage.INVITE_NOT_FOUND)
  if inv.recipient_id != recipient_id:
    raise ForbiddenError(ErrorMessage.NO_PERMISSION_FOR_INVITE)

  if not accept:
    await db.execute(delete(Invite).where(Invite.id == inv.id))
    await db.commit()
    return {"message": SuccessMessage.INVITE_DECLINED}

  role = inv.role
  db.add(BoardMember(board_id=board_id, user_id=recipient_id, role=role))
  await db.execute(delete(Invite).where(Invite.id == inv.id))
  await db.commit()
  await (notifier or get_notifier()).emit_board_change(
    board_id,
    board_change_payload(board_id, BoardAction.MEMBER_JOINED, memberUserId=recipient_id, role=str(role)),
  )
  return {"message": SuccessMessage.INVITE_ACCEPTED}


async def list_pending_invites(db: AsyncSession, user_id: str) -> list[tuple[Invite, Board, User]]:
  res = await db.execute(
    select(Invite, Board, User)
    .join(Board, Board.id == Invite.board_id)
    .join(User, User.id == Invite.sender_id)
    .where(Invite.recipient_id == user_id, Invite.status_invite == InviteStatus.PENDING)
    .order_by(Invite.created_at.desc())
  )
  return [(inv, b, u) for inv, b, u in res.all()]
