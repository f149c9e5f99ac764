from __future__ import annotations

import logging
import os
import time
from typing import BinaryIO

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import PayloadTooLargeError, UnprocessableError
from app.jobs.queue import enqueue
from app.models import Job
from app.storage.service import ObjectStorage, get_storage

logger = logging.getLogger(__name__)

TRELLO_IMPORT_JOB = "trello.import"
INVALID_JSON_FILE = "Invalid JSON file"
JSON_MIME_TYPES = {"application/json", "text/json"}


def stream_size(stream: BinaryIO) -> int:
  pos = stream.tell()
  stream.seek(0, os.SEEK_END)
  size = stream.tell()
  stream.seek(pos)
  return size


def _looks_like_json_object(stream: BinaryIO) -> bool:
  pos = stream.tell()
  try:
    head = stream.read(512)
  finally:
    stream.seek(pos)
  if head.startswith(b"\xef\xbb\xbf"):
    head = head[3:]
  return head.lstrip()[:1] == b"{"


def validate_upload(filename: str | None, content_type: str | None, stream: BinaryIO) -> int:
  """
  Cheap checks before anything is stored: JSON by name or MIME type, an object
  at the top level, and no more than `import_max_bytes`. The body itself is
  only parsed later, streamed by the worker.
  """
  name = (filename or "").lower()
  mime = (content_type or "").split(";", 1)[0].strip().lower()
  if not (name.endswith(".json") or mime in JSON_MIME_TYPES):
    raise UnprocessableError(INVALID_JSON_FILE)
  size = stream_size(stream)
  if size > settings.import_max_bytes:
    raise PayloadTooLargeError(f"File too large (max {settings.import_max_bytes} bytes)")
  if size == 0 or not _looks_like_json_object(stream):
    raise UnprocessableError(INVALID_JSON_FILE)
  return size


def import_file_key(board_id: str, filename: str, *, now_ms: int | None = None) -> str:
  now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
  return f"imports/boards/{board_id}/{now_ms}-{os.path.basename(filename)}"


async def start_trello_import(
  db: AsyncSession,
  *,
  user_id: str,
  board_id: str,
  filename: str,
  content_type: str | None,
  stream: BinaryIO,
  storage: ObjectStorage | None = None,
) -> Job:
  validate_upload(filename, content_type, stream)
  file_key = import_file_key(board_id, filename)
  stream.seek(0)
  await (storage or get_storage()).upload_file(settings.s3_bucket_name, file_key, stream, content_type)
  job = await enqueue(db, TRELLO_IMPORT_JOB, {"fileKey": file_key, "boardId": board_id, "userId": user_id})
  logger.info("Trello import queued job=%s board=%s user=%s", job.id, board_id, user_id)
  return job
