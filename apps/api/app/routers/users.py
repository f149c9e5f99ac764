from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.deps import get_current_user, get_db
from app.errors import BadRequestError
from app.models import User
from app.schemas import AvatarOut, MessageOut, ProfileOut, ProfileUpdatedOut, ProfileUpdateIn
from app.users import service as users

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=ProfileOut)
async def get_profile(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ProfileOut:
  u = await users.get_user_or_404(db, user.id)
  return ProfileOut(**users.profile(u))


@router.put("", response_model=ProfileUpdatedOut)
async def update_profile(
  payload: ProfileUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ProfileUpdatedOut:
  u = await users.update_user(db, user.id, name=payload.name, user_name=payload.userName, email=payload.email)
  return ProfileUpdatedOut(message=users.USER_UPDATED, data=ProfileOut(**users.profile(u)))


@router.delete("", response_model=MessageOut)
async def delete_account(
  response: Response,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> MessageOut:
  out = await users.delete_account(db, user.id)
  response.delete_cookie(key=settings.session_cookie_name, path="/", domain=settings.cookie_domain or None)
  return MessageOut(**out)


@router.post("/avatar", response_model=AvatarOut)
async def upload_avatar(
  file: UploadFile | None = File(default=None),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> AvatarOut:
  if file is None:
    raise BadRequestError("No file provided.")
  out = await users.upload_avatar(
    db,
    user.id,
    filename=file.filename,
    content_type=file.content_type,
    stream=file.file,
  )
  return AvatarOut(**out)
