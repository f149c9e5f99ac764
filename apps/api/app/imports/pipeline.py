"""
Trello board import.

The uploaded export is read twice straight from object storage. The first
pass streams `lists.item` and writes lists in batches; the second streams
`cards.item`, resolves each card's `idList` through the external id map built
after the first pass, and writes tasks in per-list batches.

ijson pulls bytes only when the consumer asks for the next element, so while
a batch is being written nothing more is read from storage.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import Any, BinaryIO

import ijson
from dateutil import parser as dateparser
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.db import SessionLocal
from app.lists.service import create_lists_bulk, lists_for_mapping
from app.models import TaskStatus
from app.realtime.notifier import BoardNotifier
from app.storage.service import ObjectStorage, get_storage
from app.tasks.service import create_tasks_bulk

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class AsyncStreamReader:
  """Async `read()` over a blocking binary stream, each chunk read in a worker thread."""

  def __init__(self, stream: BinaryIO, chunk_size: int = READ_CHUNK_SIZE) -> None:
    self._stream = stream
    self._chunk_size = chunk_size

  async def read(self, n: int = -1) -> bytes:
    size = self._chunk_size if n is None or n < 0 else n
    return await asyncio.to_thread(self._stream.read, size)

  def close(self) -> None:
    self._stream.close()


def _parse_due(value: Any) -> datetime | None:
  if not value:
    return None
  try:
    return dateparser.isoparse(str(value))
  except ValueError:
    logger.warning("Ignoring unparseable card due date %r", value)
    return None


def list_record(board_id: str, item: dict[str, Any]) -> dict[str, Any]:
  return {
    "boardId": board_id,
    "externalId": item.get("id"),
    "title": item.get("name") or "",
    "isArchived": bool(item.get("closed", False)),
  }


def card_record(item: dict[str, Any]) -> dict[str, Any]:
  due = item.get("due")
  return {
    "externalId": item.get("id"),
    "title": item.get("name") or "",
    "description": item.get("desc") or None,
    "status": TaskStatus.TODO if due else TaskStatus.DONE,
    "isArchived": bool(item.get("closed", False)),
    "dueDate": _parse_due(due),
  }


class TrelloImporter:
  def __init__(
    self,
    *,
    storage: ObjectStorage | None = None,
    session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession] = SessionLocal,
    notifier: BoardNotifier | None = None,
    batch_size: int | None = None,
    bucket: str | None = None,
  ) -> None:
    self.storage = storage or get_storage()
    self.session_factory = session_factory
    self.notifier = notifier
    self.batch_size = batch_size or settings.import_batch_size
    self.bucket = bucket or settings.s3_bucket_name

  async def _items(self, file_key: str, prefix: str) -> AsyncIterator[dict[str, Any]]:
    stream = await self.storage.open_stream(self.bucket, file_key)
    reader = AsyncStreamReader(stream)
    try:
      async for item in ijson.items(reader, prefix):
        yield item
    finally:
      reader.close()

  async def import_lists(self, db: AsyncSession, file_key: str, board_id: str) -> list[int]:
    batches: list[int] = []
    batch: list[dict[str, Any]] = []
    async for item in self._items(file_key, "lists.item"):
      batch.append(list_record(board_id, item))
      if len(batch) >= self.batch_size:
        batches.append(await create_lists_bulk(db, board_id, batch, notifier=self.notifier))
        batch = []
    if batch:
      batches.append(await create_lists_bulk(db, board_id, batch, notifier=self.notifier))
    return batches

  async def import_cards(
    self,
    db: AsyncSession,
    file_key: str,
    user_id: str,
    list_map: dict[str, str],
  ) -> tuple[list[int], int]:
    batches: list[int] = []
    skipped = 0
    groups: dict[str, list[dict[str, Any]]] = {}
    async for item in self._items(file_key, "cards.item"):
      list_id = list_map.get(item.get("idList"))
      if not list_id:
        skipped += 1
        continue
      group = groups.setdefault(list_id, [])
      group.append(card_record(item))
      if len(group) >= self.batch_size:
        batches.append(await create_tasks_bulk(db, user_id, list_id, group, notifier=self.notifier))
        groups[list_id] = []

    for list_id, group in groups.items():
      if group:
        batches.append(await create_tasks_bulk(db, user_id, list_id, group, notifier=self.notifier))
    return batches, skipped

  async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
    file_key = payload["fileKey"]
    board_id = payload["boardId"]
    user_id = payload["userId"]
    logger.info("Trello import started board=%s file=%s", board_id, file_key)

    async with self.session_factory() as db:
      list_batches = await self.import_lists(db, file_key, board_id)
      list_map = await lists_for_mapping(db, board_id)
      task_batches, skipped = await self.import_cards(db, file_key, user_id, list_map)

    stats = {
      "status": "completed",
      "listsCreated": sum(list_batches),
      "tasksCreated": sum(task_batches),
      "cardsSkipped": skipped,
      "listBatches": list_batches,
      "taskBatches": task_batches,
    }
    logger.info(
      "Trello import finished board=%s lists=%s tasks=%s skipped=%s",
      board_id,
      stats["listsCreated"],
      stats["tasksCreated"],
      skipped,
    )
    return stats
