# task_api/routes/tasks.py
"""CRUD and statistics endpoints for the caller's tasks."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlmodel import Session

from task_api import config
from task_api.auth import get_current_user
from task_api.database import get_session
from task_api.errors import FieldError, NotFound, ValidationFailure
from task_api.models import Task, TaskPriority, TaskRead, TaskStatus, User, utcnow
from task_api.repository import DEFAULT_SORT, Pagination, TaskQuery, TaskRepository
from task_api.validation import validate_task

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

# Keeps skip = (page - 1) * limit inside a 64-bit SQL integer.
MAX_PAGE = 1_000_000


def get_repository(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TaskRepository:
    """Repository scoped to the authenticated caller."""
    return TaskRepository(session, user.id)


def _task_body(task: Task) -> dict:
    return TaskRead.model_validate(task).to_wire()


def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value >= 1 else default


def _build_query(
    page: Optional[str],
    limit: Optional[str],
    status: Optional[str],
    priority: Optional[str],
    is_urgent: Optional[str],
    search: Optional[str],
    sort: Optional[str],
    order: Optional[str],
) -> TaskQuery:
    errors: list[FieldError] = []
    query = TaskQuery(
        page=min(_positive_int(page, 1), MAX_PAGE),
        page_size=min(_positive_int(limit, config.DEFAULT_PAGE_SIZE), config.MAX_PAGE_SIZE),
        search=search or None,
        sort=sort or DEFAULT_SORT,
        descending=order != "asc",
    )
    if status:
        try:
            query.status = TaskStatus(status)
        except ValueError:
            errors.append(FieldError("status", "Invalid status value"))
    if priority:
        try:
            query.priority = TaskPriority(priority)
        except ValueError:
            errors.append(FieldError("priority", "Invalid priority value"))
    if is_urgent:
        query.is_urgent = is_urgent == "true"
    if errors:
        raise ValidationFailure(errors, "Invalid filter")
    return query


@router.get("")
def list_tasks(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    is_urgent: Optional[str] = Query(default=None, alias="isUrgent"),
    search: Optional[str] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
    repo: TaskRepository = Depends(get_repository),
) -> dict:
    """List the caller's tasks with filtering, sorting and offset pagination."""
    query = _build_query(page, limit, status, priority, is_urgent, search, sort, order)
    tasks, total = repo.list_tasks(query)
    return {
        "success": True,
        "tasks": [_task_body(t) for t in tasks],
        "pagination": Pagination.from_counts(total, query.page, query.page_size).to_dict(),
    }


@router.get("/stats/summary")
def task_stats(repo: TaskRepository = Depends(get_repository)) -> dict:
    """Per-status counts and hour totals for the caller's tasks."""
    return {"success": True, "stats": repo.aggregate_by_status().to_wire()}


@router.get("/{task_id}")
def get_task(task_id: str, repo: TaskRepository = Depends(get_repository)) -> dict:
    """Get a single task by ID."""
    task = repo.get(task_id)
    if task is None:
        raise NotFound()
    return {"success": True, "task": _task_body(task)}


@router.post("", status_code=201)
def create_task(
    payload: Any = Body(default=None),
    repo: TaskRepository = Depends(get_repository),
) -> dict:
    """Create a task owned by the caller."""
    fields = validate_task(payload, now=utcnow())
    task = repo.create(fields)
    return {"success": True, "message": "Task created successfully", "task": _task_body(task)}


@router.put("/{task_id}")
def update_task(
    task_id: str,
    payload: Any = Body(default=None),
    repo: TaskRepository = Depends(get_repository),
) -> dict:
    """Replace a task's fields. Validated exactly like create."""
    fields = validate_task(payload, now=utcnow())
    task = repo.update(task_id, fields)
    if task is None:
        raise NotFound()
    return {"success": True, "message": "Task updated successfully", "task": _task_body(task)}


@router.delete("/{task_id}")
def delete_task(task_id: str, repo: TaskRepository = Depends(get_repository)) -> dict:
    """Delete a task by ID."""
    if not repo.delete(task_id):
        raise NotFound()
    return {"success": True, "message": "Task deleted successfully"}
