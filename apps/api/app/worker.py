"""
Background worker for queued jobs.

Usage:
  python -m app.worker

The API process runs the same loop in-process unless JOB_WORKER_IN_PROCESS=false.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.db import SessionLocal
from app.jobs import queue
from app.jobs.registry import get_handler
from app.logging_setup import configure_logging
from app.models import Job

logger = logging.getLogger(__name__)


async def process_job(job: Job) -> dict | None:
  handler = get_handler(job.name)
  if handler is None:
    raise ValueError(f"Unknown job type: {job.name}")
  return await handler(dict(job.payload or {}))


async def run_pending_jobs_once(
  session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
  *,
  limit: int | None = None,
) -> int:
  """Claims a batch of due jobs and runs them one by one. Returns how many were claimed."""
  async with session_factory() as db:
    jobs = await queue.claim_pending(db, limit=limit or settings.worker_batch_size)
    if jobs:
      logger.info("Found %s pending jobs", len(jobs))
    for job in jobs:
      try:
        result = await process_job(job)
      except Exception as e:
        await db.rollback()
        await queue.mark_failed(db, job, f"{type(e).__name__}: {e}")
        logger.exception("Job %s (%s) failed", job.id, job.name)
        continue
      await queue.mark_completed(db, job, result)
      logger.info("Job %s (%s) completed", job.id, job.name)
    return len(jobs)


async def worker_loop(poll_interval: float | None = None) -> None:
  interval = poll_interval or settings.worker_poll_interval_seconds
  logger.info("Worker starting (poll interval: %ss, batch size: %s)", interval, settings.worker_batch_size)
  while True:
    try:
      await run_pending_jobs_once()
    except Exception:
      logger.exception("Error in worker loop")
    await asyncio.sleep(interval)


def main() -> None:
  configure_logging()
  try:
    asyncio.run(worker_loop())
  except KeyboardInterrupt:
    logger.info("Worker shutting down")


if __name__ == "__main__":
  main()
