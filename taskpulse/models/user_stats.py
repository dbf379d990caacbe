"""Per-user suggestion counter."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from taskpulse.timestamps import utcnow


class UserStats(SQLModel, table=True):
    """One row per user, created lazily on the first suggestion request."""
    __tablename__ = "user_stats"

    user_id: str = Field(primary_key=True, max_length=128)
    suggestion_count: int = Field(default=0)
    last_suggestion_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
