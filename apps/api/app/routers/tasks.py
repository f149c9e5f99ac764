from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import ANY_ROLE, EDITOR_ROLES, board_id_for_list, board_id_for_task, get_current_user, get_db, require_board_role
from app.errors import NotFoundError
from app.models import Task, User
from app.realtime.notifier import BoardNotifier, get_notifier
from app.schemas import DueTaskOut, PositionIn, TaskCreateIn, TaskMoveIn, TaskOut, TaskUpdateIn
from app.tasks import service as tasks

router = APIRouter(prefix="/tasks", tags=["tasks"])


def task_out(t: Task) -> TaskOut:
  return TaskOut(
    id=t.id,
    listId=t.list_id,
    externalId=t.external_id,
    creatorId=t.creator_id,
    assignedToId=t.assigned_to_id,
    title=t.title,
    description=t.description,
    position=t.position,
    status=t.status,
    dueDate=t.due_date,
    isArchived=t.is_archived,
    completedAt=t.completed_at,
    createdAt=t.created_at,
    updatedAt=t.updated_at,
  )


@router.get("/due/today", response_model=list[DueTaskOut])
async def due_today(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[DueTaskOut]:
  return [
    DueTaskOut(**task_out(t).model_dump(), boardId=lst.board_id, listTitle=lst.title)
    for t, lst in await tasks.tasks_due_today(db, user.id)
  ]


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
  payload: TaskCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> TaskOut:
  await require_board_role(await board_id_for_list(db, payload.listId), EDITOR_ROLES, user, db)
  t = await tasks.create_task(
    db,
    creator_id=user.id,
    list_id=payload.listId,
    title=payload.title.strip(),
    description=payload.description,
    status=payload.status,
    due_date=payload.dueDate,
    assigned_to_id=payload.assignedToId,
    notifier=notifier,
  )
  return task_out(t)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> TaskOut:
  await require_board_role(await board_id_for_task(db, task_id), ANY_ROLE, user, db)
  return task_out(await tasks.get_task_or_404(db, task_id))


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(
  task_id: str,
  payload: TaskUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> TaskOut:
  await require_board_role(await board_id_for_task(db, task_id), EDITOR_ROLES, user, db)
  optional = {}
  if "dueDate" in payload.model_fields_set:
    optional["due_date"] = payload.dueDate
  if "assignedToId" in payload.model_fields_set:
    optional["assigned_to_id"] = payload.assignedToId
  t = await tasks.update_task(
    db,
    task_id=task_id,
    title=payload.title,
    description=payload.description,
    status=payload.status,
    is_archived=payload.isArchived,
    notifier=notifier,
    **optional,
  )
  return task_out(t)


@router.patch("/{task_id}/position", response_model=TaskOut)
async def update_task_position(
  task_id: str,
  payload: PositionIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> TaskOut:
  await require_board_role(await board_id_for_task(db, task_id), EDITOR_ROLES, user, db)
  t = await tasks.update_task_position(db, task_id=task_id, new_position=payload.newPosition, notifier=notifier)
  return task_out(t)


@router.patch("/{task_id}/move", response_model=TaskOut)
async def move_task(
  task_id: str,
  payload: TaskMoveIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> TaskOut:
  await require_board_role(await board_id_for_task(db, task_id), EDITOR_ROLES, user, db)
  try:
    target_board_id = await board_id_for_list(db, payload.newListId)
  except NotFoundError:
    raise NotFoundError(tasks.TARGET_LIST_NOT_FOUND) from None
  await require_board_role(target_board_id, EDITOR_ROLES, user, db)
  t = await tasks.move_task_to_list(
    db, task_id=task_id, new_list_id=payload.newListId, new_position=payload.newPosition, notifier=notifier
  )
  return task_out(t)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
  task_id: str,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> Response:
  await require_board_role(await board_id_for_task(db, task_id), EDITOR_ROLES, user, db)
  await tasks.delete_task(db, task_id=task_id, notifier=notifier)
  return Response(status_code=status.HTTP_204_NO_CONTENT)
