from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from app.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def session_expires_at() -> datetime:
  return datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expires_hours)


def create_session_token(user_id: str, *, user_name: str | None = None) -> str:
  now = datetime.now(timezone.utc)
  payload = {"sub": user_id, "userName": user_name, "iat": now, "exp": session_expires_at()}
  return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
  """
  Raises:
    jwt.InvalidTokenError: bad signature, malformed or expired token.
  """
  return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
