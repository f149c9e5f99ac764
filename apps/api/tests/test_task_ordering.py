from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from conftest import RecordingNotifier, add_member, create_board, create_list, create_task, login_as, register


async def _titles_by_position(client: AsyncClient, list_id: str) -> list[tuple[str, int]]:
  res = await client.get(f"/lists/{list_id}")
  assert res.status_code == 200, res.text
  return [(t["title"], t["position"]) for t in sorted(res.json()["tasks"], key=lambda t: t["position"])]


@pytest.mark.anyio
async def test_tasks_append_zero_based_and_reorder(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Todo")
  tasks = [await create_task(client, lst["id"], t) for t in ("a", "b", "c", "d")]
  assert [t["position"] for t in tasks] == [0, 1, 2, 3]

  r = await client.patch(f"/tasks/{tasks[0]['id']}/position", json={"newPosition": 2})
  assert r.status_code == 200, r.text
  assert await _titles_by_position(client, lst["id"]) == [("b", 0), ("c", 1), ("a", 2), ("d", 3)]

  r = await client.patch(f"/tasks/{tasks[3]['id']}/position", json={"newPosition": 0})
  assert r.status_code == 200, r.text
  assert await _titles_by_position(client, lst["id"]) == [("d", 0), ("b", 1), ("c", 2), ("a", 3)]

  r = await client.patch(f"/tasks/{tasks[1]['id']}/position", json={"newPosition": 1})
  assert r.status_code == 200, r.text
  assert await _titles_by_position(client, lst["id"]) == [("d", 0), ("b", 1), ("c", 2), ("a", 3)]
  assert notifier.actions(b["id"])[-1] == "updated task position"


@pytest.mark.anyio
async def test_task_delete_closes_gap(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Todo")
  tasks = [await create_task(client, lst["id"], t) for t in ("a", "b", "c")]

  r = await client.delete(f"/tasks/{tasks[1]['id']}")
  assert r.status_code == 204, r.text
  assert await _titles_by_position(client, lst["id"]) == [("a", 0), ("c", 1)]
  assert "deleted task" in notifier.actions(b["id"])


@pytest.mark.anyio
async def test_move_task_between_lists(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  src = await create_list(client, b["id"], "Src")
  dst = await create_list(client, b["id"], "Dst")
  a, moving, c = [await create_task(client, src["id"], t) for t in ("a", "moving", "c")]
  x, y = [await create_task(client, dst["id"], t) for t in ("x", "y")]

  r = await client.patch(f"/tasks/{moving['id']}/move", json={"newListId": dst["id"], "newPosition": 1})
  assert r.status_code == 200, r.text
  assert r.json()["listId"] == dst["id"]

  assert await _titles_by_position(client, src["id"]) == [("a", 0), ("c", 1)]
  assert await _titles_by_position(client, dst["id"]) == [("x", 0), ("moving", 1), ("y", 2)]
  assert notifier.actions(b["id"])[-1] == "moved task between lists"


@pytest.mark.anyio
async def test_move_task_to_unknown_list(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Src")
  t = await create_task(client, lst["id"], "a")

  r = await client.patch(f"/tasks/{t['id']}/move", json={"newListId": "missing", "newPosition": 0})
  assert r.status_code == 404, r.text
  assert r.json()["detail"] == "Target list not found"


@pytest.mark.anyio
async def test_completed_at_follows_done_status(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Todo")

  done = await create_task(client, lst["id"], "born done", status="DONE")
  assert done["completedAt"] is not None

  t = await create_task(client, lst["id"], "work")
  assert t["completedAt"] is None

  r = await client.patch(f"/tasks/{t['id']}", json={"status": "DONE"})
  assert r.status_code == 200, r.text
  assert r.json()["completedAt"] is not None

  r = await client.patch(f"/tasks/{t['id']}", json={"title": "work (renamed)"})
  assert r.json()["completedAt"] is not None

  r = await client.patch(f"/tasks/{t['id']}", json={"status": "IN_PROGRESS"})
  assert r.status_code == 200, r.text
  assert r.json()["completedAt"] is None


@pytest.mark.anyio
async def test_assignee_must_be_board_member(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Todo")
  outsider = await register(client)
  member = await register(client)
  await add_member(b["id"], member["id"], "MEMBER")
  await login_as(client, owner)
  r = await client.post("/tasks", json={"listId": lst["id"], "title": "x", "assignedToId": outsider["id"]})
  assert r.status_code == 400, r.text

  t = await create_task(client, lst["id"], "y", assignedToId=member["id"])
  assert t["assignedToId"] == member["id"]

  r = await client.patch(f"/tasks/{t['id']}", json={"assignedToId": None})
  assert r.status_code == 200, r.text
  assert r.json()["assignedToId"] is None


@pytest.mark.anyio
async def test_due_today_lists_open_tasks_created_by_caller(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Todo")
  now = datetime.now(timezone.utc)

  overdue = await create_task(client, lst["id"], "overdue", dueDate=(now - timedelta(days=2)).isoformat())
  today = await create_task(client, lst["id"], "today", dueDate=now.isoformat(), status="IN_PROGRESS")
  await create_task(client, lst["id"], "later", dueDate=(now + timedelta(days=3)).isoformat())
  await create_task(client, lst["id"], "finished", dueDate=now.isoformat(), status="DONE")
  await create_task(client, lst["id"], "no date")

  r = await client.get("/tasks/due/today")
  assert r.status_code == 200, r.text
  assert [t["id"] for t in r.json()] == [overdue["id"], today["id"]]
  assert r.json()[0]["boardId"] == b["id"]


@pytest.mark.anyio
async def test_task_moves_outside_range_are_rejected(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  src = await create_list(client, b["id"], "Src")
  dst = await create_list(client, b["id"], "Dst")
  a = [await create_task(client, src["id"], t) for t in ("a", "b", "c")][0]
  await create_task(client, dst["id"], "x")

  r = await client.patch(f"/tasks/{a['id']}/position", json={"newPosition": 3})
  assert r.status_code == 400, r.text
  assert r.json()["detail"] == "Position must be between 0 and 2"

  r = await client.patch(f"/tasks/{a['id']}/move", json={"newListId": src["id"], "newPosition": 5})
  assert r.status_code == 400, r.text

  r = await client.patch(f"/tasks/{a['id']}/move", json={"newListId": dst["id"], "newPosition": 2})
  assert r.status_code == 400, r.text
  assert r.json()["detail"] == "Position must be between 0 and 1"
  assert await _titles_by_position(client, src["id"]) == [("a", 0), ("b", 1), ("c", 2)]

  # appending at the end of the destination is allowed
  r = await client.patch(f"/tasks/{a['id']}/move", json={"newListId": dst["id"], "newPosition": 1})
  assert r.status_code == 200, r.text
  assert await _titles_by_position(client, src["id"]) == [("b", 0), ("c", 1)]
  assert await _titles_by_position(client, dst["id"]) == [("x", 0), ("a", 1)]


@pytest.mark.anyio
async def test_move_to_another_board_drops_foreign_assignee(client: AsyncClient, notifier: RecordingNotifier) -> None:
  owner = await register(client)
  first = await create_board(client)
  second = await create_board(client)
  src = await create_list(client, first["id"], "Src")
  dst = await create_list(client, second["id"], "Dst")
  helper = await register(client)
  await add_member(first["id"], helper["id"], "MEMBER")
  await login_as(client, owner)
  mine = await create_task(client, src["id"], "mine", assignedToId=owner["id"])
  theirs = await create_task(client, src["id"], "theirs", assignedToId=helper["id"])

  r = await client.patch(f"/tasks/{theirs['id']}/move", json={"newListId": dst["id"], "newPosition": 0})
  assert r.status_code == 200, r.text
  assert r.json()["assignedToId"] is None
  assert notifier.actions(first["id"])[-1] == "moved task between lists"
  assert notifier.actions(second["id"])[-1] == "moved task between lists"

  r = await client.patch(f"/tasks/{mine['id']}/move", json={"newListId": dst["id"], "newPosition": 0})
  assert r.status_code == 200, r.text
  assert r.json()["assignedToId"] == owner["id"]
