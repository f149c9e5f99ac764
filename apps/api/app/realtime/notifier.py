"""
Real-time fan-out of board changes.

The core only talks to the `BoardNotifier` protocol; `RoomConnectionManager`
is the WebSocket implementation wired into the API process. Delivery is best
effort: an empty room or a broken socket is reported as `False`, never raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class BoardNotifier(Protocol):
  async def emit_board_change(self, board_id: str, payload: dict[str, Any]) -> bool: ...

  async def notify_user(self, user_id: str) -> bool: ...


def board_room(board_id: str) -> str:
  return f"board:{board_id}"


def board_change_payload(board_id: str, action: str, **context: Any) -> dict[str, Any]:
  payload: dict[str, Any] = {"boardId": board_id, "action": action}
  payload.update({k: v for k, v in context.items() if v is not None})
  payload["at"] = datetime.now(timezone.utc).isoformat()
  return payload


class RoomConnectionManager:
  """Tracks sockets per room. A socket is always in its user room and in any board rooms it joined."""

  def __init__(self) -> None:
    self._rooms: dict[str, set[WebSocket]] = {}
    self._lock = asyncio.Lock()

  async def join(self, websocket: WebSocket, room: str) -> None:
    async with self._lock:
      self._rooms.setdefault(room, set()).add(websocket)

  async def leave(self, websocket: WebSocket, room: str) -> None:
    async with self._lock:
      members = self._rooms.get(room)
      if members is None:
        return
      members.discard(websocket)
      if not members:
        del self._rooms[room]

  async def drop(self, websocket: WebSocket) -> None:
    async with self._lock:
      for room in [r for r, members in self._rooms.items() if websocket in members]:
        self._rooms[room].discard(websocket)
        if not self._rooms[room]:
          del self._rooms[room]

  def room_size(self, room: str) -> int:
    return len(self._rooms.get(room, set()))

  async def send_to_room(self, room: str, message: dict[str, Any]) -> bool:
    async with self._lock:
      sockets = set(self._rooms.get(room, set()))
    if not sockets:
      return False

    data = json.dumps(message, default=str)
    delivered = False
    closed: list[WebSocket] = []
    for ws in sockets:
      try:
        await ws.send_text(data)
        delivered = True
      except Exception:
        closed.append(ws)
    for ws in closed:
      await self.drop(ws)
    return delivered

  async def emit_board_change(self, board_id: str, payload: dict[str, Any]) -> bool:
    room = board_room(board_id)
    try:
      delivered = await self.send_to_room(room, {"event": "boardModified", "data": payload})
    except Exception:
      logger.exception("boardModified emit failed for room %s", room)
      return False
    if delivered:
      logger.info("boardModified emitted to %s action=%s", room, payload.get("action"))
    return delivered

  async def notify_user(self, user_id: str) -> bool:
    try:
      delivered = await self.send_to_room(user_id, {"event": "newNotification"})
    except Exception:
      logger.exception("newNotification emit failed for user %s", user_id)
      return False
    if not delivered:
      logger.debug("No clients connected in room %s", user_id)
    return delivered


manager = RoomConnectionManager()


def get_notifier() -> BoardNotifier:
  return manager
