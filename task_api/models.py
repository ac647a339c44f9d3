# task_api/models.py
"""Table models and wire schemas for tasks and users."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Opaque identifier for stored rows."""
    return uuid.uuid4().hex


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"
    on_hold = "on-hold"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class TaskFields(SQLModel):
    """Client-writable task fields, as they look after validation."""
    title: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    status: TaskStatus = Field(default=TaskStatus.pending)
    priority: TaskPriority = Field(default=TaskPriority.medium)
    is_urgent: bool = Field(default=False)
    estimated_hours: float = Field(default=0.0)
    actual_hours: float = Field(default=0.0)
    due_date: Optional[datetime] = Field(default=None)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class Task(TaskFields, table=True):
    """Task database table. Every row is owned by exactly one user."""
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    efficiency_score: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    username: str = Field(max_length=30, index=True, unique=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)


class AuthToken(SQLModel, table=True):
    """Opaque bearer token issued at login or registration."""
    token: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    issued_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime


class _WireModel(BaseModel):
    """Serialises snake_case attributes under camelCase wire names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @field_validator("*", mode="after")
    @classmethod
    def _utc_timestamps(cls, v):
        if isinstance(v, datetime):
            return as_utc(v)
        return v


class TaskRead(_WireModel):
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    is_urgent: bool
    estimated_hours: float
    actual_hours: float
    efficiency_score: float
    due_date: Optional[datetime] = None
    tags: list[str] = []
    user_id: str
    created_at: datetime
    updated_at: datetime


class UserRead(_WireModel):
    id: str
    username: str
    email: str
    created_at: datetime


class StatusSummary(_WireModel):
    status: TaskStatus
    count: int
    total_estimated_hours: float
    total_actual_hours: float


class TaskStats(_WireModel):
    by_status: list[StatusSummary]
    total_count: int
    urgent_count: int
