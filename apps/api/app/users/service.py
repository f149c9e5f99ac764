"""Account operations for the signed-in user (profile, deletion, avatar)."""

from __future__ import annotations

import logging
import os
import time
from typing import Any, BinaryIO

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import BadRequestError, ConflictError, NotFoundError, PayloadTooLargeError
from app.imports.service import stream_size
from app.models import Board, BoardMember, Invite, List, Task, User
from app.storage.service import ObjectStorage, get_storage

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"
ACCOUNT_DELETED = "Account deleted successfully."
USER_UPDATED = "User updated successfully."
AVATAR_UPDATED = "Avatar updated successfully."
INVALID_AVATAR_TYPE = "Invalid file type. Allowed: JPEG, PNG, WEBP, GIF."
AVATAR_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
  res = await db.execute(select(User).where(User.id == user_id))
  u = res.scalar_one_or_none()
  if not u:
    raise NotFoundError(USER_NOT_FOUND)
  return u


def image_url(key: str | None) -> str | None:
  if not key:
    return None
  if settings.cdn_base_url:
    return f"{settings.cdn_base_url.rstrip('/')}/{key}"
  return key


def profile(u: User) -> dict[str, Any]:
  return {"id": u.id, "name": u.name, "userName": u.user_name, "email": u.email, "image": image_url(u.image)}


async def update_user(
  db: AsyncSession,
  user_id: str,
  *,
  name: str | None = None,
  user_name: str | None = None,
  email: str | None = None,
) -> User:
  u = await get_user_or_404(db, user_id)
  email = email.strip().lower() if email is not None else None
  user_name = user_name.strip() if user_name is not None else None

  clashes = []
  if email is not None and email != u.email:
    clashes.append(User.email == email)
  if user_name is not None and user_name != u.user_name:
    clashes.append(User.user_name == user_name)
  if clashes:
    res = await db.execute(select(User.id).where(User.id != u.id, or_(*clashes)))
    if res.first():
      raise ConflictError("Email or username already in use")

  if name is not None:
    u.name = name.strip()
  if user_name is not None:
    u.user_name = user_name
  if email is not None:
    u.email = email
  await db.commit()
  return u


async def delete_account(db: AsyncSession, user_id: str) -> dict:
  """
  Removes the user, every board they own (lists, tasks, invites and memberships
  included) and their memberships elsewhere, in one transaction. Tasks they
  created or were assigned on other boards stay, detached from the account.
  """
  await get_user_or_404(db, user_id)
  owned = select(Board.id).where(Board.owner_id == user_id)
  owned_lists = select(List.id).where(List.board_id.in_(owned))

  await db.execute(delete(Task).where(Task.list_id.in_(owned_lists)))
  await db.execute(delete(List).where(List.board_id.in_(owned)))
  await db.execute(
    delete(Invite).where(or_(Invite.board_id.in_(owned), Invite.sender_id == user_id, Invite.recipient_id == user_id))
  )
  await db.execute(delete(BoardMember).where(or_(BoardMember.board_id.in_(owned), BoardMember.user_id == user_id)))
  await db.execute(delete(Board).where(Board.owner_id == user_id))
  await db.execute(update(Task).where(Task.creator_id == user_id).values(creator_id=None))
  await db.execute(update(Task).where(Task.assigned_to_id == user_id).values(assigned_to_id=None))
  await db.execute(delete(User).where(User.id == user_id))
  await db.commit()
  logger.info("Deleted account %s", user_id)
  return {"message": ACCOUNT_DELETED}


def avatar_key(user_id: str, filename: str | None, *, now_ms: int | None = None) -> str:
  now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
  ext = os.path.splitext(os.path.basename(filename or ""))[1].lower()
  return f"users/avatars/{user_id}/{now_ms}-avatar{ext}"


async def upload_avatar(
  db: AsyncSession,
  user_id: str,
  *,
  filename: str | None,
  content_type: str | None,
  stream: BinaryIO,
  storage: ObjectStorage | None = None,
) -> dict:
  mime = (content_type or "").split(";", 1)[0].strip().lower()
  if mime not in AVATAR_MIME_TYPES:
    raise BadRequestError(INVALID_AVATAR_TYPE)
  size = stream_size(stream)
  if size == 0:
    raise BadRequestError("No file provided.")
  if size > settings.avatar_max_bytes:
    raise PayloadTooLargeError(f"File too large (max {settings.avatar_max_bytes} bytes)")

  u = await get_user_or_404(db, user_id)
  storage = storage or get_storage()
  key = avatar_key(user_id, filename)
  stream.seek(0)
  await storage.upload_file(settings.s3_bucket_name, key, stream, mime)

  previous = u.image
  u.image = key
  await db.commit()
  if previous and previous != key:
    await storage.delete_file(settings.s3_bucket_name, previous)
  return {"message": AVATAR_UPDATED, "imagePath": image_url(key)}
