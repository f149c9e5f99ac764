from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from app.config import settings
from app.errors import DomainError
from app.logging_setup import configure_logging
from app.routers.analysis import router as analysis_router
from app.routers.auth import router as auth_router
from app.routers.boards import router as boards_router
from app.routers.imports import router as imports_router
from app.routers.lists import router as lists_router
from app.routers.realtime import router as realtime_router
from app.routers.tasks import router as tasks_router
from app.routers.users import router as users_router
from app.worker import worker_loop

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="SprintTracker API", version=settings.app_version)


@app.exception_handler(DomainError)
async def _domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
  return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(boards_router)
app.include_router(lists_router)
app.include_router(tasks_router)
app.include_router(imports_router)
app.include_router(analysis_router)
app.include_router(realtime_router)


@app.middleware("http")
async def _security_headers_middleware(request, call_next):
  response = await call_next(request)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


_worker_task: asyncio.Task | None = None


def _is_test_db() -> bool:
  db_name = settings.database_url.rsplit("/", 1)[-1]
  return "test" in db_name


@app.on_event("startup")
async def _startup() -> None:
  global _worker_task
  if _is_test_db():
    return
  if settings.jwt_secret.strip().lower() in {"dev-secret-change-me", "replace_with_strong_random_secret"}:
    logger.warning("JWT_SECRET is a placeholder, set a strong secret outside development")
  if settings.job_worker_in_process and _worker_task is None:
    _worker_task = asyncio.create_task(worker_loop())


@app.on_event("shutdown")
async def _shutdown() -> None:
  global _worker_task
  if _worker_task is not None:
    _worker_task.cancel()
    _worker_task = None


def run() -> None:
  import uvicorn

  uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port, proxy_headers=True, log_config=None)
