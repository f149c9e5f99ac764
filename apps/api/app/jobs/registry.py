from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from app.imports.pipeline import TrelloImporter
from app.imports.service import TRELLO_IMPORT_JOB

JobHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any] | None]]


async def run_trello_import(payload: dict[str, Any]) -> dict[str, Any]:
  return await TrelloImporter().run(payload)


HANDLERS: dict[str, JobHandler] = {
  TRELLO_IMPORT_JOB: run_trello_import,
}


def get_handler(name: str) -> JobHandler | None:
  return HANDLERS.get(name)
