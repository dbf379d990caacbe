"""Task model for SQLModel."""
import secrets
import string
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Column, Index, Text
from sqlmodel import Field, SQLModel

from taskpulse.timestamps import epoch_ms, to_iso, utcnow

_ID_ALPHABET = string.ascii_letters + string.digits


class TaskStatus(str, Enum):
    """Workflow status of a task"""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskType(str, Enum):
    """Kind of work a task represents"""
    TASK = "task"
    BUG = "bug"
    FEATURE = "feature"
    IMPROVEMENT = "improvement"


def generate_document_id(length: int = 20) -> str:
    """Generate a random alphanumeric document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_client_id(user_id: str, now: Optional[datetime] = None) -> str:
    """Creation nonce in the form ``{user_id}_{epoch_ms}_{random}``."""
    return f"{user_id}_{epoch_ms(now)}_{uuid.uuid4().hex[:9]}"


class Task(SQLModel, table=True):
    """Task document owned by a single user."""
    __tablename__ = "tasks"
    __table_args__ = (
        # Serves the owner + newest-first listing query
        Index("ix_tasks_user_id_created_at", "user_id", "created_at"),
    )

    id: str = Field(default_factory=generate_document_id, primary_key=True, max_length=64)
    user_id: str = Field(index=True, max_length=128)
    title: str = Field(max_length=200, min_length=1)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    status: str = Field(default=TaskStatus.PENDING.value, max_length=20)
    type: str = Field(default=TaskType.TASK.value, max_length=20)
    due_date: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = Field(default=None)
    client_id: str = Field(default="", max_length=200)


_NEXT_STATUS = {
    TaskStatus.PENDING: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.COMPLETED,
    TaskStatus.COMPLETED: TaskStatus.PENDING,
}


def coerce_status(value: Any) -> TaskStatus:
    """Map a stored or user-supplied status onto TaskStatus, defaulting to pending."""
    try:
        return TaskStatus(value)
    except ValueError:
        return TaskStatus.PENDING


def next_status(current: Any) -> TaskStatus:
    """Next status in the pending -> in-progress -> completed -> pending cycle."""
    return _NEXT_STATUS[coerce_status(current)]


def status_transition_fields(current: Any, new: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Fields to write when a task moves from ``current`` to ``new`` status.

    Entering completed stamps ``completed_at``; leaving completed clears it.
    Timestamps are returned as ISO strings, the shape the state layer holds.
    """
    current_status = coerce_status(current)
    new_status = TaskStatus(new)

    updates: Dict[str, Any] = {"status": new_status}
    if new_status == TaskStatus.COMPLETED and current_status != TaskStatus.COMPLETED:
        updates["completed_at"] = to_iso(now or utcnow())
    elif current_status == TaskStatus.COMPLETED and new_status != TaskStatus.COMPLETED:
        updates["completed_at"] = None
    return updates
