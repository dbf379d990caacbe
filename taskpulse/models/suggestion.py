"""Generated suggestion, stored for analytics only."""
import uuid
from datetime import datetime

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from taskpulse.timestamps import utcnow


class Suggestion(SQLModel, table=True):
    __tablename__ = "suggestions"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    task_name: str = Field(max_length=200)
    task_name_lower: str = Field(index=True, max_length=200)
    task_type: str = Field(default="task", max_length=20)
    content: str = Field(sa_column=Column(Text, nullable=False))
    created_by: str = Field(index=True, max_length=128)
    created_at: datetime = Field(default_factory=utcnow)
    usage_count: int = Field(default=1)
    is_from_cache: bool = Field(default=False)
