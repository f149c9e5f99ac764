from __future__ import annotations

from collections.abc import Iterable

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.boards.constants import ErrorMessage
from app.config import settings
from app.db import SessionLocal
from app.errors import ForbiddenError, NotFoundError
from app.models import Board, BoardMember, List, Role, Task, User
from app.security import decode_session_token

ANY_ROLE = (Role.ADMIN, Role.MEMBER, Role.OBSERVER)
EDITOR_ROLES = (Role.ADMIN, Role.MEMBER)
ADMIN_ONLY = (Role.ADMIN,)


async def get_db() -> AsyncSession:
  async with SessionLocal() as session:
    yield session


def session_token_from_request(request: Request) -> str | None:
  token = request.cookies.get(settings.session_cookie_name)
  if token:
    return token
  auth = request.headers.get("authorization")
  if auth and auth.lower().startswith("bearer "):
    return auth.split(" ", 1)[1].strip() or None
  return None


async def user_from_token(db: AsyncSession, token: str | None) -> User | None:
  if not token:
    return None
  try:
    claims = decode_session_token(token)
  except jwt.InvalidTokenError:
    return None
  res = await db.execute(select(User).where(User.id == claims.get("sub")))
  return res.scalar_one_or_none()


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
  token = session_token_from_request(request)
  if not token:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
  u = await user_from_token(db, token)
  if not u:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
  return u


async def require_board_role(
  board_id: str,
  roles: Iterable[str],
  user: User,
  db: AsyncSession,
) -> BoardMember:
  res = await db.execute(
    select(BoardMember).where(BoardMember.board_id == board_id, BoardMember.user_id == user.id)
  )
  m = res.scalar_one_or_none()
  if not m:
    raise ForbiddenError(ErrorMessage.NO_ACCESS)
  if m.role not in set(roles):
    raise ForbiddenError(ErrorMessage.ROLE_NOT_ALLOWED)
  return m


async def get_board_or_404(db: AsyncSession, board_id: str) -> Board:
  res = await db.execute(select(Board).where(Board.id == board_id))
  b = res.scalar_one_or_none()
  if not b:
    raise NotFoundError(ErrorMessage.BOARD_NOT_FOUND)
  return b


async def board_id_for_list(db: AsyncSession, list_id: str) -> str:
  res = await db.execute(select(List.board_id).where(List.id == list_id))
  board_id = res.scalar_one_or_none()
  if not board_id:
    raise NotFoundError("List not found")
  return board_id


async def board_id_for_task(db: AsyncSession, task_id: str) -> str:
  res = await db.execute(select(List.board_id).join(Task, Task.list_id == List.id).where(Task.id == task_id))
  board_id = res.scalar_one_or_none()
  if not board_id:
    raise NotFoundError("Task not found")
  return board_id
