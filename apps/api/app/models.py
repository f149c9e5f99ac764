from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def _uuid() -> str:
  return str(uuid.uuid4())


class Role(StrEnum):
  ADMIN = "ADMIN"
  MEMBER = "MEMBER"
  OBSERVER = "OBSERVER"


class BoardVisibility(StrEnum):
  PUBLIC = "PUBLIC"
  PRIVATE = "PRIVATE"
  TEAM = "TEAM"


class TaskStatus(StrEnum):
  TODO = "TODO"
  IN_PROGRESS = "IN_PROGRESS"
  DONE = "DONE"
  ARCHIVED = "ARCHIVED"


class InviteStatus(StrEnum):
  PENDING = "PENDING"


class JobStatus(StrEnum):
  PENDING = "PENDING"
  RUNNING = "RUNNING"
  COMPLETED = "COMPLETED"
  FAILED = "FAILED"


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  name: Mapped[str] = mapped_column(String, nullable=False)
  user_name: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  image: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Board(Base):
  __tablename__ = "boards"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
  visibility: Mapped[str] = mapped_column(String, nullable=False, default=BoardVisibility.PRIVATE)
  is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class BoardMember(Base):
  __tablename__ = "board_members"

  board_id: Mapped[str] = mapped_column(String(36), ForeignKey("boards.id"), primary_key=True)
  user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), primary_key=True)
  role: Mapped[str] = mapped_column(String, nullable=False)
  joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Invite(Base):
  __tablename__ = "invites"
  __table_args__ = (UniqueConstraint("board_id", "recipient_id", name="ux_invite_board_recipient"),)

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  board_id: Mapped[str] = mapped_column(String(36), ForeignKey("boards.id"), nullable=False, index=True)
  sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
  recipient_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
  email: Mapped[str] = mapped_column(String, nullable=False)
  role: Mapped[str] = mapped_column(String, nullable=False, default=Role.OBSERVER)
  status_invite: Mapped[str] = mapped_column(String, nullable=False, default=InviteStatus.PENDING)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class List(Base):
  __tablename__ = "lists"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  external_id: Mapped[str | None] = mapped_column(String, nullable=True)
  board_id: Mapped[str] = mapped_column(String(36), ForeignKey("boards.id"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
  is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Task(Base):
  __tablename__ = "tasks"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  external_id: Mapped[str | None] = mapped_column(String, nullable=True)
  list_id: Mapped[str] = mapped_column(String(36), ForeignKey("lists.id"), nullable=False, index=True)
  creator_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
  assigned_to_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  status: Mapped[str] = mapped_column(String, nullable=False, default=TaskStatus.TODO)
  due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Job(Base):
  __tablename__ = "jobs"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  name: Mapped[str] = mapped_column(String, nullable=False, index=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
  status: Mapped[str] = mapped_column(String, nullable=False, default=JobStatus.PENDING, index=True)
  attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
  last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
  result: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
  run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
