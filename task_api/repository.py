# task_api/repository.py
"""User-scoped persistence for tasks.

Every query a :class:`TaskRepository` issues is filtered by the owning
user's id, so a task that belongs to someone else is indistinguishable
from one that does not exist.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from task_api import config
from task_api.efficiency import efficiency
from task_api.errors import ServerFault
from task_api.models import (
    StatusSummary,
    Task,
    TaskFields,
    TaskPriority,
    TaskStats,
    TaskStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

# Wire name -> column. Attribute names are accepted as well.
SORTABLE_FIELDS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "title": Task.title,
    "status": Task.status,
    "priority": Task.priority,
    "isUrgent": Task.is_urgent,
    "dueDate": Task.due_date,
    "estimatedHours": Task.estimated_hours,
    "actualHours": Task.actual_hours,
    "efficiencyScore": Task.efficiency_score,
}
SORTABLE_FIELDS.update({column.key: column for column in list(SORTABLE_FIELDS.values())})

DEFAULT_SORT = "createdAt"


@dataclass
class TaskQuery:
    """Filter, sort and page parameters for :meth:`TaskRepository.list_tasks`."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    is_urgent: Optional[bool] = None
    search: Optional[str] = None
    sort: str = DEFAULT_SORT
    descending: bool = True
    page: int = 1
    page_size: int = config.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class Pagination:
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_counts(cls, total: int, page: int, page_size: int) -> "Pagination":
        pages = math.ceil(total / page_size) if page_size > 0 else 0
        return cls(
            current=page,
            pages=pages,
            total=total,
            has_next=page < pages,
            has_prev=page > 1,
        )

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "pages": self.pages,
            "total": self.total,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


class TaskRepository:
    """Task CRUD and aggregation for a single owning user."""

    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def _owned(self):
        return col(Task.user_id) == self.user_id

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to %s task for user %s", action, self.user_id)
            raise ServerFault(f"Server error while trying to {action} task") from exc

    # -- reads ---------------------------------------------------------------

    def list_tasks(self, query: TaskQuery) -> tuple[list[Task], int]:
        """Return one page of matching tasks and the total number of matches."""
        conditions = [self._owned()]
        if query.status is not None:
            conditions.append(col(Task.status) == query.status)
        if query.priority is not None:
            conditions.append(col(Task.priority) == query.priority)
        if query.is_urgent is not None:
            conditions.append(col(Task.is_urgent) == query.is_urgent)
        if query.search:
            conditions.append(or_(
                col(Task.title).icontains(query.search, autoescape=True),
                col(Task.description).icontains(query.search, autoescape=True),
            ))

        total = self.session.exec(
            select(func.count()).select_from(Task).where(*conditions)
        ).one()

        column = col(SORTABLE_FIELDS.get(query.sort, SORTABLE_FIELDS[DEFAULT_SORT]))
        order = column.desc() if query.descending else column.asc()
        statement = (
            select(Task)
            .where(*conditions)
            .order_by(order, col(Task.id).asc())
            .offset(query.offset)
            .limit(query.page_size)
        )
        return list(self.session.exec(statement).all()), total

    def get(self, task_id: str) -> Optional[Task]:
        statement = select(Task).where(col(Task.id) == task_id, self._owned())
        return self.session.exec(statement).first()

    def aggregate_by_status(self) -> TaskStats:
        """Count tasks and sum their hours per status."""
        statement = (
            select(
                Task.status,
                func.count(col(Task.id)),
                func.coalesce(func.sum(Task.estimated_hours), 0.0),
                func.coalesce(func.sum(Task.actual_hours), 0.0),
            )
            .where(self._owned())
            .group_by(Task.status)
            .order_by(Task.status)
        )
        by_status = [
            StatusSummary(
                status=status,
                count=count,
                total_estimated_hours=float(estimated),
                total_actual_hours=float(actual),
            )
            for status, count, estimated, actual in self.session.exec(statement).all()
        ]
        urgent = self.session.exec(
            select(func.count())
            .select_from(Task)
            .where(self._owned(), col(Task.is_urgent) == True)  # noqa: E712
        ).one()
        return TaskStats(
            by_status=by_status,
            total_count=sum(row.count for row in by_status),
            urgent_count=urgent,
        )

    # -- writes --------------------------------------------------------------

    def create(self, fields: TaskFields) -> Task:
        """Persist a new task owned by the caller with a freshly computed score."""
        now = utcnow()
        task = Task.model_validate(fields, update={
            "user_id": self.user_id,
            "efficiency_score": efficiency(fields.estimated_hours, fields.actual_hours),
            "created_at": now,
            "updated_at": now,
        })
        self.session.add(task)
        self._commit("create")
        self.session.refresh(task)
        logger.info("Created task %s for user %s", task.id, self.user_id)
        return task

    def update(self, task_id: str, fields: TaskFields) -> Optional[Task]:
        """Replace the writable fields of an owned task. None if not found."""
        task = self.get(task_id)
        if task is None:
            return None
        for key, value in fields.model_dump().items():
            setattr(task, key, value)
        task.efficiency_score = efficiency(task.estimated_hours, task.actual_hours)
        task.updated_at = utcnow()
        self.session.add(task)
        self._commit("update")
        self.session.refresh(task)
        logger.info("Updated task %s for user %s", task.id, self.user_id)
        return task

    def delete(self, task_id: str) -> bool:
        """Hard-delete an owned task. False if not found."""
        task = self.get(task_id)
        if task is None:
            return False
        self.session.delete(task)
        self._commit("delete")
        logger.info("Deleted task %s for user %s", task_id, self.user_id)
        return True
