from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import ANY_ROLE, EDITOR_ROLES, board_id_for_list, get_board_or_404, get_current_user, get_db, require_board_role
from app.lists import service as lists
from app.models import List, User
from app.realtime.notifier import BoardNotifier, get_notifier
from app.routers.tasks import task_out
from app.schemas import ListCreateIn, ListOut, ListUpdateIn, ListWithTasksOut, MessageOut, PositionIn

router = APIRouter(prefix="/lists", tags=["lists"])


def _list_out(lst: List) -> ListOut:
  return ListOut(
    id=lst.id,
    boardId=lst.board_id,
    externalId=lst.external_id,
    title=lst.title,
    position=lst.position,
    isArchived=lst.is_archived,
    createdAt=lst.created_at,
    updatedAt=lst.updated_at,
  )


@router.post("", response_model=ListOut, status_code=status.HTTP_201_CREATED)
async def create_list(
  payload: ListCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> ListOut:
  await get_board_or_404(db, payload.boardId)
  await require_board_role(payload.boardId, EDITOR_ROLES, user, db)
  lst = await lists.create_list(
    db, board_id=payload.boardId, title=payload.title.strip(), position=payload.position, notifier=notifier
  )
  return _list_out(lst)


@router.get("/board/{board_id}", response_model=list[ListOut])
async def list_lists(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ListOut]:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, ANY_ROLE, user, db)
  return [_list_out(lst) for lst in await lists.list_lists(db, board_id)]


@router.get("/{list_id}", response_model=ListWithTasksOut)
async def get_list(list_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ListWithTasksOut:
  await require_board_role(await board_id_for_list(db, list_id), ANY_ROLE, user, db)
  lst, tasks = await lists.get_list_with_tasks(db, list_id)
  return ListWithTasksOut(**_list_out(lst).model_dump(), tasks=[task_out(t) for t in tasks])


@router.patch("/{list_id}", response_model=ListOut)
async def update_list(
  list_id: str,
  payload: ListUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> ListOut:
  await require_board_role(await board_id_for_list(db, list_id), EDITOR_ROLES, user, db)
  lst = await lists.update_list(db, list_id=list_id, title=payload.title, is_archived=payload.isArchived, notifier=notifier)
  return _list_out(lst)


@router.patch("/{list_id}/position", response_model=ListOut)
async def update_list_position(
  list_id: str,
  payload: PositionIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> ListOut:
  await require_board_role(await board_id_for_list(db, list_id), EDITOR_ROLES, user, db)
  lst = await lists.update_list_position(db, list_id=list_id, new_position=payload.newPosition, notifier=notifier)
  return _list_out(lst)


@router.delete("/{list_id}", response_model=MessageOut)
async def delete_list(
  list_id: str,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  notifier: BoardNotifier = Depends(get_notifier),
) -> dict:
  await require_board_role(await board_id_for_list(db, list_id), EDITOR_ROLES, user, db)
  return await lists.delete_list(db, list_id=list_id, notifier=notifier)
