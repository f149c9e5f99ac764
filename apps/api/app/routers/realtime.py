"""
WebSocket endpoint for board updates and user notifications.

Authenticates with the session cookie (or ?token=). Every socket joins its
user room; clients then send {"event": "joinBoard" | "leaveBoard", "boardId"}
to follow a board and receive `boardModified` events for it.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from sqlalchemy import select

from app.config import settings
from app.db import SessionLocal
from app.deps import user_from_token
from app.models import BoardMember
from app.realtime.notifier import board_room, manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _is_member(board_id: str, user_id: str) -> bool:
  async with SessionLocal() as db:
    res = await db.execute(
      select(BoardMember.user_id).where(BoardMember.board_id == board_id, BoardMember.user_id == user_id)
    )
    return res.scalar_one_or_none() is not None


async def _handle_message(websocket: WebSocket, user_id: str, raw: str) -> dict:
  try:
    msg = json.loads(raw)
  except json.JSONDecodeError:
    return {"ok": False, "reason": "invalid message"}
  if not isinstance(msg, dict):
    return {"ok": False, "reason": "invalid message"}

  event = msg.get("event")
  board_id = str(msg.get("boardId") or "")
  if event not in ("joinBoard", "leaveBoard"):
    return {"ok": False, "reason": "unknown event"}
  if not board_id:
    return {"ok": False, "reason": "boardId is required"}

  room = board_room(board_id)
  if event == "leaveBoard":
    await manager.leave(websocket, room)
    return {"ok": True, "room": room}
  if not await _is_member(board_id, user_id):
    return {"ok": False, "reason": "forbidden"}
  await manager.join(websocket, room)
  return {"ok": True, "room": room}


@router.websocket("/ws")
async def board_socket(websocket: WebSocket, token: str | None = Query(None)):
  async with SessionLocal() as db:
    user = await user_from_token(db, token or websocket.cookies.get(settings.session_cookie_name))
  if not user:
    await websocket.close(code=4001, reason="Authentication required")
    return

  await websocket.accept()
  await manager.join(websocket, user.id)
  try:
    while True:
      raw = await websocket.receive_text()
      if raw == "ping":
        await websocket.send_text("pong")
        continue
      await websocket.send_text(json.dumps(await _handle_message(websocket, user.id, raw)))
  except WebSocketDisconnect:
    logger.debug("Socket for user %s disconnected", user.id)
  finally:
    await manager.drop(websocket)
