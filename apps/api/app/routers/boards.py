from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.boards import invites, membership
from app.boards import service as boards
from app.boards.constants import SuccessMessage
from app.deps import ADMIN_ONLY, ANY_ROLE, get_board_or_404, get_current_user, get_db, require_board_role
from app.models import Board, User
from app.realtime.notifier import BoardNotifier, get_notifier
from app.schemas import (
  BoardCreateIn,
  BoardOut,
  BoardUpdateIn,
  InviteIn,
  InviteOut,
  InviteResponseIn,
  MemberOut,
  MemberRoleIn,
  MessageOut,
)

router = APIRouter(prefix="/boards", tags=["boards"])


def _board_out(b: Board, member_count: int | None = None) -> BoardOut:
  return BoardOut(
    id=b.id,
    title=b.title,
    description=b.description,
    ownerId=b.owner_id,
    visibility=b.visibility,
    isArchived=b.is_archived,
    createdAt=b.created_at,
    updatedAt=b.updated_at,
    memberCount=member_count,
  )


@router.get("", response_model=list[BoardOut])
async def list_boards(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[BoardOut]:
  return [_board_out(b, count) for b, count in await boards.list_boards_for_user(db, user.id)]


@router.post("", response_model=BoardOut, status_code=status.HTTP_201_CREATED)
async def create_board(payload: BoardCreateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  b = await boards.create_board(
    db,
    owner_id=user.id,
    title=payload.title.strip(),
    description=payload.description,
    visibility=payload.visibility,
  )
  return _board_out(b, 1)


@router.get("/{board_id}", response_model=BoardOut)
async def get_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  b = await get_board_or_404(db, board_id)
  await require_board_role(board_id, ANY_ROLE, user, db)
  return _board_out(b)


@router.patch("/{board_id}", response_model=BoardOut)
async def update_board(
  board_id: str,
  payload: BoardUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> BoardOut:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ADMIN_ONLY, user, db)
  b = await boards.update_board(
    db,
    board_id=board_id,
    actor_id=user.id,
    title=payload.title,
    description=payload.description,
    visibility=payload.visibility,
    is_archived=payload.isArchived,
    notifier=notifier,
  )
  return _board_out(b)


@router.delete("/{board_id}", response_model=MessageOut)
async def delete_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ADMIN_ONLY, user, db)
  return await boards.delete_board(db, board_id=board_id)


@router.get("/{board_id}/members", response_model=list[MemberOut])
async def list_members(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[MemberOut]:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ANY_ROLE, user, db)
  return [
    MemberOut(userId=u.id, name=u.name, userName=u.user_name, email=u.email, role=m.role, joinedAt=m.joined_at)
    for m, u in await boards.list_members(db, board_id)
  ]


@router.delete("/{board_id}/members/{user_id}", response_model=MessageOut)
async def remove_member(
  board_id: str,
  user_id: str,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> dict:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ANY_ROLE, user, db)
  return await membership.remove_member(
    db, board_id=board_id, target_user_id=user_id, requester_id=user.id, notifier=notifier
  )


@router.patch("/{board_id}/members/{user_id}/role", response_model=MessageOut)
async def change_member_role(
  board_id: str,
  user_id: str,
  payload: MemberRoleIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> dict:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ADMIN_ONLY, user, db)
  await membership.change_member_role(
    db,
    board_id=board_id,
    target_user_id=user_id,
    requester_id=user.id,
    new_role=payload.role,
    notifier=notifier,
  )
  return {"message": SuccessMessage.ROLE_CHANGED}


@router.post("/{board_id}/invites", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def invite_member(
  board_id: str,
  payload: InviteIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> dict:
  await invites.invite_user(
    db, board_id=board_id, sender_id=user.id, user_name=payload.userName.strip(), role=payload.role, notifier=notifier
  )
  return {"message": SuccessMessage.INVITE_SENT}


@router.post("/{board_id}/invites/{invite_id}/respond", response_model=MessageOut)
async def respond_invite(
  board_id: str,
  invite_id: str,
  payload: InviteResponseIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> dict:
  return await invites.respond_to_invite(
    db, board_id=board_id, recipient_id=user.id, invite_id=invite_id, accept=payload.accept, notifier=notifier
  )


@router.get("/invites/pending", response_model=list[InviteOut])
async def my_pending_invites(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[InviteOut]:
  return [
    InviteOut(
      id=inv.id,
      boardId=inv.board_id,
      boardTitle=b.title,
      senderId=inv.sender_id,
      senderName=sender.name,
      recipientId=inv.recipient_id,
      email=inv.email,
      role=inv.role,
      statusInvite=inv.status_invite,
      createdAt=inv.created_at,
    )
    for inv, b, sender in await invites.list_pending_invites(db, user.id)
  ]
