"""Background jobs stored in the `jobs` table and picked up by the worker."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import Job, JobStatus, utcnow

logger = logging.getLogger(__name__)


async def enqueue(
  db: AsyncSession,
  name: str,
  payload: dict[str, Any],
  *,
  run_at: datetime | None = None,
  max_attempts: int | None = None,
) -> Job:
  job = Job(
    name=name,
    payload=payload,
    status=JobStatus.PENDING,
    run_at=run_at or utcnow(),
    max_attempts=max_attempts or settings.job_max_attempts,
  )
  db.add(job)
  await db.commit()
  logger.info("Enqueued job %s (%s)", job.id, name)
  return job


async def claim_pending(db: AsyncSession, *, limit: int = 10) -> list[Job]:
  """
  Moves up to `limit` due PENDING jobs to RUNNING and returns them.

  Rows are selected FOR UPDATE SKIP LOCKED so concurrent workers never claim the same job.
  """
  res = await db.execute(
    select(Job)
    .where(Job.status == JobStatus.PENDING, Job.run_at <= utcnow())
    .order_by(Job.run_at.asc())
    .limit(limit)
    .with_for_update(skip_locked=True)
  )
  jobs = list(res.scalars().all())
  for job in jobs:
    job.status = JobStatus.RUNNING
    job.attempts += 1
  await db.commit()
  return jobs


async def mark_completed(db: AsyncSession, job: Job, result: dict[str, Any] | None = None) -> Job:
  job.status = JobStatus.COMPLETED
  job.completed_at = utcnow()
  job.last_error = None
  job.result = result
  await db.commit()
  return job


async def mark_failed(db: AsyncSession, job: Job, error: str) -> Job:
  """Back to PENDING while attempts remain, otherwise FAILED."""
  job.last_error = error
  job.status = JobStatus.PENDING if job.attempts < job.max_attempts else JobStatus.FAILED
  await db.commit()
  return job


async def get_job(db: AsyncSession, job_id: str) -> Job | None:
  res = await db.execute(select(Job).where(Job.id == job_id))
  return res.scalar_one_or_none()
