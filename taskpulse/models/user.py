"""User model for SQLModel."""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from taskpulse.timestamps import utcnow


class User(SQLModel, table=True):
    """User identity for authentication and task ownership."""
    __tablename__ = "users"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    email: str = Field(unique=True, index=True, max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=255)
    photo_url: Optional[str] = Field(default=None, max_length=500)
    password_hash: str = Field(default="", max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
