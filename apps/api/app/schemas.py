from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field
from pydantic import field_validator

RoleName = Literal["ADMIN", "MEMBER", "OBSERVER"]
VisibilityName = Literal["PUBLIC", "PRIVATE", "TEAM"]
TaskStatusName = Literal["TODO", "IN_PROGRESS", "DONE", "ARCHIVED"]


def _parse_dt_utc(value: object) -> object:
  if value is None:
    return None
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str):
    s = value.strip()
    if not s:
      return None
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  else:
    return value

  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


class RegisterIn(BaseModel):
  name: str = Field(min_length=1, max_length=120)
  userName: str = Field(min_length=3, max_length=64)
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=8, max_length=200)


class LoginIn(BaseModel):
  email: str
  password: str


class UserOut(BaseModel):
  id: str
  name: str
  userName: str
  email: str


class ProfileOut(UserOut):
  image: str | None = None


class ProfileUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=120)
  userName: str | None = Field(default=None, min_length=3, max_length=64)
  email: str | None = Field(default=None, min_length=3, max_length=320)


class ProfileUpdatedOut(BaseModel):
  message: str
  data: ProfileOut


class AvatarOut(BaseModel):
  message: str
  imagePath: str


class MessageOut(BaseModel):
  message: str


class BoardCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=120)
  description: str | None = Field(default=None, max_length=2000)
  visibility: VisibilityName | None = None


class BoardUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=120)
  description: str | None = Field(default=None, max_length=2000)
  visibility: VisibilityName | None = None
  isArchived: bool | None = None


class BoardOut(BaseModel):
  id: str
  title: str
  description: str | None
  ownerId: str
  visibility: str
  isArchived: bool
  createdAt: datetime
  updatedAt: datetime
  memberCount: int | None = None


class MemberOut(BaseModel):
  userId: str
  name: str
  userName: str
  email: str
  role: str
  joinedAt: datetime


class MemberRoleIn(BaseModel):
  role: RoleName


class InviteIn(BaseModel):
  userName: str = Field(min_length=1, max_length=64)
  role: RoleName = "OBSERVER"


class InviteResponseIn(BaseModel):
  accept: bool


class InviteOut(BaseModel):
  id: str
  boardId: str
  boardTitle: str | None = None
  senderId: str
  senderName: str | None = None
  recipientId: str
  email: str
  role: str
  statusInvite: str
  createdAt: datetime


class ListCreateIn(BaseModel):
  boardId: str
  title: str = Field(min_length=1, max_length=200)
  position: int | None = Field(default=None, ge=0)


class ListUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=200)
  isArchived: bool | None = None


class PositionIn(BaseModel):
  newPosition: int = Field(ge=0)


class ListOut(BaseModel):
  id: str
  boardId: str
  externalId: str | None
  title: str
  position: int
  isArchived: bool
  createdAt: datetime
  updatedAt: datetime


class TaskCreateIn(BaseModel):
  listId: str
  title: str = Field(min_length=1, max_length=500)
  description: str | None = None
  status: TaskStatusName = "TODO"
  dueDate: datetime | None = None
  assignedToId: str | None = None

  @field_validator("dueDate", mode="before")
  @classmethod
  def _due_date_to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class TaskUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=500)
  description: str | None = None
  status: TaskStatusName | None = None
  dueDate: datetime | None = None
  assignedToId: str | None = None
  isArchived: bool | None = None

  @field_validator("dueDate", mode="before")
  @classmethod
  def _due_date_to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class TaskMoveIn(BaseModel):
  newListId: str
  newPosition: int = Field(ge=0)


class TaskOut(BaseModel):
  id: str
  listId: str
  externalId: str | None
  creatorId: str | None
  assignedToId: str | None
  title: str
  description: str | None
  position: int
  status: str
  dueDate: datetime | None
  isArchived: bool
  completedAt: datetime | None
  createdAt: datetime
  updatedAt: datetime


class DueTaskOut(TaskOut):
  boardId: str
  listTitle: str


class ListWithTasksOut(ListOut):
  tasks: list[TaskOut]


class StatusCountOut(BaseModel):
  status: str
  count: int
  percentage: float


class BasicSummaryOut(BaseModel):
  total: int
  statusCounts: list[StatusCountOut]


class DailyCompletedOut(BaseModel):
  date: str
  count: int


class CompletedSummaryOut(BaseModel):
  total: int
  dailyCounts: list[DailyCompletedOut]


class ImportStartedOut(BaseModel):
  message: str
  jobId: str
  fileKey: str


class JobOut(BaseModel):
  id: str
  name: str
  status: str
  attempts: int
  maxAttempts: int
  lastError: str | None
  result: dict | None
  createdAt: datetime
  completedAt: datetime | None
