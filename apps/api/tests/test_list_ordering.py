from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import RecordingNotifier, add_member, create_board, create_list, create_task, register


async def _positions(client: AsyncClient, board_id: str) -> list[tuple[str, int]]:
  res = await client.get(f"/lists/board/{board_id}")
  assert res.status_code == 200, res.text
  return [(lst["title"], lst["position"]) for lst in res.json()]


@pytest.mark.anyio
async def test_lists_append_one_based(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)

  for title in ("A", "B", "C"):
    await create_list(client, b["id"], title)

  assert await _positions(client, b["id"]) == [("A", 1), ("B", 2), ("C", 3)]
  assert notifier.actions(b["id"]).count("created list") == 3


@pytest.mark.anyio
async def test_list_move_shifts_siblings(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lists = [await create_list(client, b["id"], t) for t in ("A", "B", "C", "D")]

  r = await client.patch(f"/lists/{lists[3]['id']}/position", json={"newPosition": 1})
  assert r.status_code == 200, r.text
  assert await _positions(client, b["id"]) == [("D", 1), ("A", 2), ("B", 3), ("C", 4)]

  r = await client.patch(f"/lists/{lists[3]['id']}/position", json={"newPosition": 3})
  assert r.status_code == 200, r.text
  assert await _positions(client, b["id"]) == [("A", 1), ("B", 2), ("D", 3), ("C", 4)]


@pytest.mark.anyio
async def test_list_move_to_same_position_is_noop_but_notifies(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lists = [await create_list(client, b["id"], t) for t in ("A", "B", "C")]
  before = await _positions(client, b["id"])

  r = await client.patch(f"/lists/{lists[1]['id']}/position", json={"newPosition": 2})
  assert r.status_code == 200, r.text
  assert await _positions(client, b["id"]) == before
  assert notifier.actions(b["id"])[-1] == "updated list position"


@pytest.mark.anyio
async def test_list_delete_closes_gap(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lists = [await create_list(client, b["id"], t) for t in ("A", "B", "C")]

  r = await client.delete(f"/lists/{lists[0]['id']}")
  assert r.status_code == 200, r.text
  assert r.json() == {"message": "List removed successfully"}
  assert await _positions(client, b["id"]) == [("B", 1), ("C", 2)]

  await create_list(client, b["id"], "D")
  assert await _positions(client, b["id"]) == [("B", 1), ("C", 2), ("D", 3)]


@pytest.mark.anyio
async def test_list_delete_rejected_while_it_holds_open_tasks(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "A")
  t = await create_task(client, lst["id"], "open")

  r = await client.delete(f"/lists/{lst['id']}")
  assert r.status_code == 400, r.text
  assert r.json()["detail"] == "Cannot delete a list that contains tasks"

  r = await client.patch(f"/tasks/{t['id']}", json={"isArchived": True})
  assert r.status_code == 200, r.text
  r = await client.delete(f"/lists/{lst['id']}")
  assert r.status_code == 200, r.text
  assert (await client.get(f"/tasks/{t['id']}")).status_code == 404


@pytest.mark.anyio
async def test_list_with_explicit_position_is_taken_as_given(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lst = await create_list(client, b["id"], "Pinned", position=7)
  assert lst["position"] == 7


@pytest.mark.anyio
async def test_missing_list_is_404(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  r = await client.patch("/lists/does-not-exist/position", json={"newPosition": 1})
  assert r.status_code == 404, r.text
  assert r.json()["detail"] == "List not found"


@pytest.mark.anyio
async def test_observer_cannot_create_lists(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  observer = await register(client)
  await add_member(b["id"], observer["id"], "OBSERVER")

  r = await client.post("/lists", json={"boardId": b["id"], "title": "Nope"})
  assert r.status_code == 403, r.text
  assert r.json()["detail"] == "Action not allowed for your role on this board."
  assert (await client.get(f"/lists/board/{b['id']}")).status_code == 200

  await register(client)
  r = await client.get(f"/lists/board/{b['id']}")
  assert r.status_code == 403, r.text
  assert r.json()["detail"] == "You do not have access to this board."


@pytest.mark.anyio
async def test_list_move_outside_board_range_is_rejected(client: AsyncClient, notifier: RecordingNotifier) -> None:
  await register(client)
  b = await create_board(client)
  lists = [await create_list(client, b["id"], t) for t in ("A", "B", "C")]

  r = await client.patch(f"/lists/{lists[0]['id']}/position", json={"newPosition": 10})
  assert r.status_code == 400, r.text
  assert r.json()["detail"] == "Position must be between 1 and 3"

  r = await client.patch(f"/lists/{lists[1]['id']}/position", json={"newPosition": 0})
  assert r.status_code == 400, r.text

  r = await client.patch(f"/lists/{lists[0]['id']}/position", json={"newPosition": 3})
  assert r.status_code == 200, r.text
  assert await _positions(client, b["id"]) == [("B", 1), ("C", 2), ("A", 3)]
