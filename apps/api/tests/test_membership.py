from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from app.boards.membership import LeaveBoard, RemoveOther, TransferToAdmin, change_member_role, plan_member_removal
from app.db import SessionLocal
from app.errors import BadRequestError
from app.models import Board, BoardMember, List
from conftest import RecordingNotifier, add_member, create_board, create_list, create_task, login_as, member_role, register


def _at(seconds: int) -> datetime:
  return datetime.now(timezone.utc) + timedelta(seconds=seconds)


async def _board(board_id: str) -> Board | None:
  async with SessionLocal() as db:
    res = await db.execute(select(Board).where(Board.id == board_id))
    return res.scalar_one_or_none()


@pytest.mark.anyio
async def test_owner_leaving_transfers_to_oldest_admin(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  newer = await register(client)
  older = await register(client)
  await add_member(b["id"], newer["id"], "ADMIN", joined_at=_at(20))
  await add_member(b["id"], older["id"], "ADMIN", joined_at=_at(10))

  await login_as(client, owner)
  r = await client.delete(f"/boards/{b['id']}/members/{owner['id']}")
  assert r.status_code == 200, r.text
  assert r.json()["message"] == "Ownership transferred to the oldest ADMIN and member removed"

  board = await _board(b["id"])
  assert board.owner_id == older["id"]
  assert await member_role(b["id"], owner["id"]) is None
  assert await member_role(b["id"], newer["id"]) == "ADMIN"

  board_id, payload = notifier.board_events[-1]
  assert board_id == b["id"]
  assert payload["action"] == "member_removed"
  assert payload["memberUserId"] == owner["id"]
  assert payload["by"] == owner["id"]
  assert "at" in payload


@pytest.mark.anyio
async def test_owner_leaving_promotes_oldest_member(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  first = await register(client)
  second = await register(client)
  watcher = await register(client)
  await add_member(b["id"], watcher["id"], "OBSERVER", joined_at=_at(1))
  await add_member(b["id"], first["id"], "MEMBER", joined_at=_at(5))
  await add_member(b["id"], second["id"], "MEMBER", joined_at=_at(9))

  await login_as(client, owner)
  r = await client.delete(f"/boards/{b['id']}/members/{owner['id']}")
  assert r.status_code == 200, r.text
  assert r.json()["message"] == "Ownership transferred to the oldest member (promoted to ADMIN) and user removed"

  assert (await _board(b["id"])).owner_id == first["id"]
  assert await member_role(b["id"], first["id"]) == "ADMIN"
  assert await member_role(b["id"], second["id"]) == "MEMBER"
  assert await member_role(b["id"], watcher["id"]) == "OBSERVER"


@pytest.mark.anyio
async def test_owner_leaving_with_only_observers_deletes_board(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Todo")
  await create_task(client, lst["id"], "task")
  watcher = await register(client)
  await add_member(b["id"], watcher["id"], "OBSERVER")

  await login_as(client, owner)
  r = await client.delete(f"/boards/{b['id']}/members/{owner['id']}")
  assert r.status_code == 200, r.text
  assert r.json()["message"] == "Board deleted, you were the only eligible member (no ADMIN/MEMBER)"

  assert await _board(b["id"]) is None
  assert await member_role(b["id"], watcher["id"]) is None
  async with SessionLocal() as db:
    res = await db.execute(select(List).where(List.board_id == b["id"]))
    assert res.scalars().all() == []
  assert (await client.get(f"/boards/{b['id']}")).status_code == 404


@pytest.mark.anyio
async def test_owner_cannot_be_removed_by_someone_else(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  admin = await register(client)
  await add_member(b["id"], admin["id"], "ADMIN")

  r = await client.delete(f"/boards/{b['id']}/members/{owner['id']}")
  assert r.status_code == 403, r.text
  assert r.json()["detail"] == "Cannot remove the board owner"
  assert (await _board(b["id"])).owner_id == owner["id"]


@pytest.mark.anyio
async def test_member_removal_rules(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  alice = await register(client)
  bob = await register(client)
  await add_member(b["id"], alice["id"], "MEMBER")
  await add_member(b["id"], bob["id"], "MEMBER")

  # bob (MEMBER) cannot remove alice
  r = await client.delete(f"/boards/{b['id']}/members/{alice['id']}")
  assert r.status_code == 403, r.text
  assert r.json()["detail"] == "Only administrators can remove other members"

  # bob can leave
  r = await client.delete(f"/boards/{b['id']}/members/{bob['id']}")
  assert r.status_code == 200, r.text
  assert r.json()["message"] == "Member removed successfully"
  assert await member_role(b["id"], bob["id"]) is None

  await login_as(client, owner)
  r = await client.delete(f"/boards/{b['id']}/members/{bob['id']}")
  assert r.status_code == 404, r.text
  assert r.json()["detail"] == "User is not a member of this board"

  r = await client.delete(f"/boards/{b['id']}/members/{alice['id']}")
  assert r.status_code == 200, r.text
  assert notifier.board_events[-1][1]["memberUserId"] == alice["id"]
  assert notifier.board_events[-1][1]["by"] == owner["id"]


@pytest.mark.anyio
async def test_plan_member_removal_outcomes(client: AsyncClient) -> None:
  owner = await register(client)
  b = await create_board(client)
  admin = await register(client)
  member = await register(client)
  await add_member(b["id"], admin["id"], "ADMIN", joined_at=_at(1))
  await add_member(b["id"], member["id"], "MEMBER", joined_at=_at(2))

  async with SessionLocal() as db:
    board = (await db.execute(select(Board).where(Board.id == b["id"]))).scalar_one()
    assert await plan_member_removal(db, board, owner["id"], owner["id"]) == TransferToAdmin(
      board_id=b["id"], departing_user_id=owner["id"], new_owner_id=admin["id"]
    )
    assert await plan_member_removal(db, board, member["id"], member["id"]) == LeaveBoard(board_id=b["id"], user_id=member["id"])
    assert await plan_member_removal(db, board, member["id"], admin["id"]) == RemoveOther(
      board_id=b["id"], user_id=member["id"], removed_by=admin["id"]
    )


@pytest.mark.anyio
async def test_owner_role_is_fixed_and_second_admin_can_be_demoted(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  second = await register(client)
  await add_member(b["id"], second["id"], "MEMBER")

  await login_as(client, owner)
  r = await client.patch(f"/boards/{b['id']}/members/{owner['id']}/role", json={"role": "MEMBER"})
  assert r.status_code == 403, r.text
  assert r.json()["detail"] == "Cannot change the board owner role"

  r = await client.patch(f"/boards/{b['id']}/members/{second['id']}/role", json={"role": "ADMIN"})
  assert r.status_code == 200, r.text
  assert r.json()["message"] == "Role changed successfully"
  payload = notifier.board_events[-1][1]
  assert payload["action"] == "member_role_changed"
  assert (payload["oldRole"], payload["newRole"], payload["by"]) == ("MEMBER", "ADMIN", owner["id"])

  # two admins: demotion of the non-owner admin succeeds
  r = await client.patch(f"/boards/{b['id']}/members/{second['id']}/role", json={"role": "MEMBER"})
  assert r.status_code == 200, r.text
  assert await member_role(b["id"], second["id"]) == "MEMBER"


@pytest.mark.anyio
async def test_sole_admin_guard_in_service(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  other_admin = await register(client)
  await add_member(b["id"], other_admin["id"], "ADMIN")

  async with SessionLocal() as db:
    # owner demoted out of band, leaving other_admin as the only ADMIN
    await db.execute(
      update(BoardMember).where(BoardMember.board_id == b["id"], BoardMember.user_id == owner["id"]).values(role="MEMBER")
    )
    await db.commit()
    with pytest.raises(BadRequestError) as exc:
      await change_member_role(
        db, board_id=b["id"], target_user_id=other_admin["id"], requester_id=other_admin["id"], new_role="OBSERVER", notifier=notifier
      )
  assert exc.value.message == "Cannot demote the only ADMIN of the board"


@pytest.mark.anyio
async def test_only_admins_change_roles(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  member = await register(client)
  await add_member(b["id"], member["id"], "MEMBER")

  r = await client.patch(f"/boards/{b['id']}/members/{member['id']}/role", json={"role": "ADMIN"})
  assert r.status_code == 403, r.text
  assert r.json()["detail"] == "Action not allowed for your role on this board."
