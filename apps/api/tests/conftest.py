from __future__ import annotations

import os
import secrets
import sys
import tempfile
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

_TMP = Path(tempfile.mkdtemp(prefix="sprinttracker-test-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP / 'sprinttracker_test.db'}")
os.environ.setdefault("STORAGE_LOCAL_DIR", str(_TMP / "objects"))
os.environ.setdefault("JOB_WORKER_IN_PROCESS", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.config import settings
from app.db import SessionLocal, engine
from app.main import app
from app.models import Base, BoardMember, User
from app.rate_limit import limiter
from app.realtime.notifier import get_notifier
from app.storage.service import LocalStorage, set_storage

PASSWORD = "correct-horse-battery"


class RecordingNotifier:
  def __init__(self) -> None:
    self.board_events: list[tuple[str, dict[str, Any]]] = []
    self.user_notifications: list[str] = []

  async def emit_board_change(self, board_id: str, payload: dict[str, Any]) -> bool:
    self.board_events.append((board_id, payload))
    return True

  async def notify_user(self, user_id: str) -> bool:
    self.user_notifications.append(user_id)
    return True

  def actions(self, board_id: str | None = None) -> list[str]:
    return [p["action"] for b, p in self.board_events if board_id is None or b == board_id]


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  limiter.reset_prefix("import:")
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.drop_all)
    await conn.run_sync(Base.metadata.create_all)
  await engine.dispose()


@pytest.fixture(autouse=True)
async def _clean_between_tests() -> None:
  db_name = settings.database_url.rsplit("/", 1)[-1]
  if "test" not in db_name:
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. sprinttracker_test)."
    )
  await _reset_db()
  yield
  await engine.dispose()


@pytest.fixture
def notifier() -> RecordingNotifier:
  rec = RecordingNotifier()
  app.dependency_overrides[get_notifier] = lambda: rec
  yield rec
  app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
  s = LocalStorage(tmp_path / "objects")
  set_storage(s)
  yield s
  set_storage(None)


@pytest.fixture
async def client() -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


async def register(client: AsyncClient, user_name: str | None = None, *, name: str | None = None) -> dict:
  user_name = user_name or f"user-{secrets.token_hex(4)}"
  res = await client.post(
    "/auth/register",
    json={"name": name or user_name.title(), "userName": user_name, "email": f"{user_name}@example.com", "password": PASSWORD},
  )
  assert res.status_code == 201, res.text
  await login(client, f"{user_name}@example.com")
  return res.json()


async def login(client: AsyncClient, email: str, password: str = PASSWORD) -> dict:
  res = await client.post("/auth/login", json={"email": email, "password": password})
  assert res.status_code == 200, res.text
  cookie = res.headers.get("set-cookie")
  assert cookie and f"{settings.session_cookie_name}=" in cookie
  return res.json()


async def login_as(client: AsyncClient, user: dict) -> dict:
  return await login(client, user["email"])


async def create_board(client: AsyncClient, title: str | None = None) -> dict:
  res = await client.post("/boards", json={"title": title or f"Board {secrets.token_hex(3)}"})
  assert res.status_code == 201, res.text
  return res.json()


async def create_list(client: AsyncClient, board_id: str, title: str, **extra: Any) -> dict:
  res = await client.post("/lists", json={"boardId": board_id, "title": title, **extra})
  assert res.status_code == 201, res.text
  return res.json()


async def create_task(client: AsyncClient, list_id: str, title: str, **extra: Any) -> dict:
  res = await client.post("/tasks", json={"listId": list_id, "title": title, **extra})
  assert res.status_code == 201, res.text
  return res.json()


async def add_member(board_id: str, user_id: str, role: str, **extra: Any) -> None:
  async with SessionLocal() as db:
    db.add(BoardMember(board_id=board_id, user_id=user_id, role=role, **extra))
    await db.commit()


async def member_role(board_id: str, user_id: str) -> str | None:
  async with SessionLocal() as db:
    res = await db.execute(select(BoardMember.role).where(BoardMember.board_id == board_id, BoardMember.user_id == user_id))
    return res.scalar_one_or_none()


async def user_by_name(user_name: str) -> User:
  async with SessionLocal() as db:
    res = await db.execute(select(User).where(User.user_name == user_name))
    return res.scalar_one()
