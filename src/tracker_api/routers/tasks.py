from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import require_identity
from ..container import get_task_repository
from ..errors import InvalidInput
from ..models import TaskStatus
from ..repositories import ListQuery, TaskRepository
from ..schemas import ErrorOut, TaskCreate, TaskDeleted, TaskOut, TaskStatsOut, TaskUpdate
from ..sessions import SessionClaims

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    responses={
        401: {"model": ErrorOut, "description": "Missing or expired token"},
        403: {"model": ErrorOut, "description": "Malformed or forged token"},
    },
)

# Query-string sort names and the timestamp fields they select.
_SORT_FIELDS = {"createdAt": "created_at", "updatedAt": "updated_at"}


def _parse_status(value: str) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError as exc:
        raise InvalidInput("Status must be pending, in-progress, or completed") from exc


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List the caller's tasks, newest first.\n\n"
        "Query parameters:\n"
        "- status: 'all' (default) or one of pending, in-progress, completed\n"
        "- sort: createdAt (default) or updatedAt"
    ),
    responses={400: {"model": ErrorOut, "description": "Invalid query parameters"}},
)
def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    sort: str = Query("createdAt", description="Timestamp to order by, newest first"),
    identity: SessionClaims = Depends(require_identity),
    repo: TaskRepository = Depends(get_task_repository),
) -> List[TaskOut]:
    if sort not in _SORT_FIELDS:
        raise InvalidInput("sort must be 'createdAt' or 'updatedAt'")

    selected = None
    if status_filter and status_filter != "all":
        if status_filter not in {s.value for s in TaskStatus}:
            # no task can carry an unknown status
            return []
        selected = TaskStatus(status_filter)

    items = repo.list(identity.user_id, ListQuery(status=selected, sort=_SORT_FIELDS[sort]))
    return [TaskOut.from_entity(t) for t in items]


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=TaskStatsOut,
    summary="Task Statistics",
    description="Count the caller's tasks in total and per status.",
)
def task_stats(
    identity: SessionClaims = Depends(require_identity),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskStatsOut:
    return TaskStatsOut(**repo.stats(identity.user_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task owned by the caller. Status defaults to pending.",
    responses={400: {"model": ErrorOut, "description": "Empty title or unknown status"}},
)
def create_task(
    payload: TaskCreate,
    identity: SessionClaims = Depends(require_identity),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    """
    Create a new task.
    """
    if not payload.title:
        raise InvalidInput("Task title is required")
    task_status = _parse_status(payload.status) if payload.status else TaskStatus.PENDING
    created = repo.create(identity.user_id, payload.title, task_status)
    logger.debug("Task %s created for %s", created["id"], identity.user_id)
    return TaskOut.from_entity(created)


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Partially update the title and/or status of one of the caller's tasks.",
    responses={
        400: {"model": ErrorOut, "description": "Unknown status or blank title"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    identity: SessionClaims = Depends(require_identity),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    """
    Partial update of a task. Tasks owned by someone else are reported as not found.
    """
    new_status = _parse_status(payload.status) if payload.status else None
    updated = repo.update(identity.user_id, task_id, title=payload.title, status=new_status)
    return TaskOut.from_entity(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=TaskDeleted,
    summary="Delete Task",
    description="Delete one of the caller's tasks.",
    responses={404: {"model": ErrorOut, "description": "Task not found"}},
)
def delete_task(
    task_id: str,
    identity: SessionClaims = Depends(require_identity),
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskDeleted:
    repo.delete(identity.user_id, task_id)
    return TaskDeleted(message="Task deleted successfully", task_id=task_id)
