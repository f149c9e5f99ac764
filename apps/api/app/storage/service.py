"""Object storage for uploaded files (S3 or a local directory)."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Protocol

import boto3
from botocore.client import BaseClient

from app.config import settings

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
  async def upload_file(self, bucket: str, key: str, stream: BinaryIO, mime_type: str | None) -> None: ...

  async def open_stream(self, bucket: str, key: str) -> BinaryIO: ...

  async def delete_file(self, bucket: str, key: str) -> None: ...


def get_s3_client() -> BaseClient:
  endpoint_url = settings.s3_endpoint_url.rstrip("/") if settings.s3_endpoint_url else None
  return boto3.client(
    "s3",
    region_name=settings.s3_region or None,
    aws_access_key_id=settings.aws_access_key_id or None,
    aws_secret_access_key=settings.aws_secret_access_key or None,
    endpoint_url=endpoint_url,
  )


class S3Storage:
  def __init__(self, client: BaseClient | None = None) -> None:
    self._client = client

  @property
  def client(self) -> BaseClient:
    if self._client is None:
      self._client = get_s3_client()
    return self._client

  async def upload_file(self, bucket: str, key: str, stream: BinaryIO, mime_type: str | None) -> None:
    extra = {"ContentType": mime_type} if mime_type else None
    await asyncio.to_thread(self.client.upload_fileobj, stream, bucket, key, ExtraArgs=extra)
    logger.info("Uploaded s3://%s/%s", bucket, key)

  async def open_stream(self, bucket: str, key: str) -> BinaryIO:
    obj = await asyncio.to_thread(self.client.get_object, Bucket=bucket, Key=key)
    return obj["Body"]

  async def delete_file(self, bucket: str, key: str) -> None:
    await asyncio.to_thread(self.client.delete_object, Bucket=bucket, Key=key)
    logger.info("Deleted s3://%s/%s", bucket, key)


class LocalStorage:
  def __init__(self, root: str | Path) -> None:
    self.root = Path(root)

  def _path(self, bucket: str, key: str) -> Path:
    p = (self.root / bucket / key).resolve()
    if not p.is_relative_to(self.root.resolve()):
      raise ValueError(f"Invalid object key: {key}")
    return p

  def _write(self, path: Path, stream: BinaryIO) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as out:
      shutil.copyfileobj(stream, out)

  async def upload_file(self, bucket: str, key: str, stream: BinaryIO, mime_type: str | None) -> None:
    path = self._path(bucket, key)
    await asyncio.to_thread(self._write, path, stream)
    logger.info("Stored %s (%s)", path, mime_type or "application/octet-stream")

  async def open_stream(self, bucket: str, key: str) -> BinaryIO:
    path = self._path(bucket, key)
    if not path.exists():
      raise FileNotFoundError(f"Object not found: {bucket}/{key}")
    return path.open("rb")

  async def delete_file(self, bucket: str, key: str) -> None:
    path = self._path(bucket, key)
    await asyncio.to_thread(path.unlink, missing_ok=True)


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
  global _storage
  if _storage is None:
    if settings.storage_backend == "s3":
      _storage = S3Storage()
    else:
      _storage = LocalStorage(settings.storage_local_dir)
  return _storage


def set_storage(storage: ObjectStorage | None) -> None:
  global _storage
  _storage = storage
