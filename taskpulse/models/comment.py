"""
Comment Model

Comments belong to a task and are ordered by creation time.
Comments are immutable once created.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from taskpulse.timestamps import utcnow


class Comment(SQLModel, table=True):
    """Comment left on a task by any authenticated user."""
    __tablename__ = "comments"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    text: str = Field(sa_column=Column(Text, nullable=False))
    author_id: str = Field(max_length=128)
    author_name: str = Field(default="", max_length=255)
    created_at: datetime = Field(default_factory=utcnow, index=True)
