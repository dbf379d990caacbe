"""Task schemas for the Taskpulse API and state layer."""
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import Field, field_validator

from taskpulse.models.task import Task, TaskStatus, TaskType, coerce_status
from taskpulse.schemas.base import CamelModel
from taskpulse.timestamps import ensure_utc, to_iso, utcnow


def _blank_to_none(value: Any) -> Any:
    """Empty form values (e.g. a cleared date input) mean "no value"."""
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class TaskCreate(CamelModel):
    """Schema for creating a task."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    status: TaskStatus = TaskStatus.PENDING
    type: TaskType = TaskType.TASK
    due_date: Optional[date] = None  # ISO calendar date

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def description_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("due_date", mode="before")
    @classmethod
    def due_date_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class TaskUpdate(CamelModel):
    """
    Partial task update.

    Only fields explicitly present in the payload are written; everything
    else on the stored task is left untouched.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    type: Optional[TaskType] = None
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None

    @field_validator("due_date", "completed_at", mode="before")
    @classmethod
    def blank_means_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Title cannot be empty")
        return value

    @field_validator("completed_at")
    @classmethod
    def completed_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    def changes(self) -> Dict[str, Any]:
        """Fields present in the payload."""
        return self.model_dump(exclude_unset=True)

    def storage_fields(self) -> Dict[str, Any]:
        """Present fields as column values."""
        fields = self.changes()
        for key in ("status", "type"):
            if fields.get(key) is not None:
                fields[key] = fields[key].value
        if fields.get("description", "") is None:
            fields["description"] = ""
        return fields

    def read_fields(self) -> Dict[str, Any]:
        """Present fields in the serializable shape held by TaskRead."""
        fields = self.changes()
        for key in ("due_date", "completed_at"):
            if key in fields:
                fields[key] = to_iso(fields[key])
        if fields.get("description", "") is None:
            fields["description"] = ""
        return fields


class TaskRead(CamelModel):
    """
    Serializable task as returned by every read.

    Timestamps are ISO-8601 strings, never datetime objects.
    The creation nonce (client_id) is write-only and not exposed here.
    """
    id: str
    user_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.PENDING
    type: TaskType = TaskType.TASK
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_model(cls, task: Task) -> "TaskRead":
        """Convert a stored task, normalizing its timestamps to ISO strings."""
        try:
            task_type = TaskType(task.type)
        except ValueError:
            task_type = TaskType.TASK

        return cls(
            id=task.id,
            user_id=task.user_id,
            title=task.title,
            description=task.description or "",
            status=coerce_status(task.status),
            type=task_type,
            due_date=to_iso(task.due_date),
            created_at=to_iso(task.created_at),
            updated_at=to_iso(task.updated_at),
            completed_at=to_iso(task.completed_at),
        )

    def merged(self, updates: Mapping[str, Any]) -> "TaskRead":
        """Shallow-merge ``updates`` into a new, validated copy."""
        return TaskRead.model_validate({**self.model_dump(), **dict(updates)})

    def due_at(self) -> Optional[datetime]:
        """Due date as midnight UTC, or None."""
        if not self.due_date:
            return None
        due = date.fromisoformat(self.due_date[:10])
        return datetime.combine(due, time.min, tzinfo=timezone.utc)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Due date in the past and not completed."""
        due_at = self.due_at()
        if due_at is None or self.status == TaskStatus.COMPLETED:
            return False
        return due_at < (now or utcnow())


class TaskListResponse(CamelModel):
    tasks: list[TaskRead]
    count: int
    total_pages: int
    page: int
    page_size: int


class TaskStatusUpdate(CamelModel):
    """Direct status selection."""
    status: TaskStatus
