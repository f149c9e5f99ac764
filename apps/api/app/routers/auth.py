from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.deps import get_current_user, get_db
from app.models import User
from app.schemas import LoginIn, RegisterIn, UserOut
from app.security import create_session_token, hash_password, session_expires_at, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


def user_out(u: User) -> UserOut:
  return UserOut(id=u.id, name=u.name, userName=u.user_name, email=u.email)


def _set_session_cookie(response: Response, token: str) -> None:
  response.set_cookie(
    key=settings.session_cookie_name,
    value=token,
    httponly=True,
    secure=settings.cookie_secure,
    samesite="lax",
    domain=settings.cookie_domain or None,
    max_age=int(settings.jwt_expires_hours * 3600),
    expires=session_expires_at(),
  )


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_db)) -> UserOut:
  email = payload.email.strip().lower()
  user_name = payload.userName.strip()
  res = await db.execute(select(User.id).where(or_(User.email == email, User.user_name == user_name)))
  if res.scalar_one_or_none():
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already in use")
  u = User(name=payload.name.strip(), user_name=user_name, email=email, password_hash=hash_password(payload.password))
  db.add(u)
  await db.commit()
  return user_out(u)


@router.post("/login", response_model=UserOut)
async def login(payload: LoginIn, response: Response, db: AsyncSession = Depends(get_db)) -> UserOut:
  res = await db.execute(select(User).where(User.email == (payload.email or "").strip().lower()))
  u = res.scalar_one_or_none()
  if not u or not verify_password(payload.password, u.password_hash):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
  _set_session_cookie(response, create_session_token(u.id, user_name=u.user_name))
  return user_out(u)


@router.post("/logout")
async def logout(response: Response, user: User = Depends(get_current_user)) -> dict:
  response.delete_cookie(key=settings.session_cookie_name, path="/", domain=settings.cookie_domain or None)
  return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
  return user_out(user)
