"""Suggestion endpoint schemas."""
from enum import Enum
from typing import Optional

from taskpulse.schemas.base import CamelModel


class UrgencyLevel(str, Enum):
    OVERDUE = "overdue"
    URGENT = "urgent"
    SOON = "soon"
    NORMAL = "normal"


class SuggestionRequest(CamelModel):
    """
    Task context sent to the suggestion endpoint.

    Every field is optional at the schema level so that a missing owner id
    or task name is reported as a 400 by the service, not a 422.
    """
    user_id: Optional[str] = None
    task_name: Optional[str] = None
    task_type: Optional[str] = None
    task_description: Optional[str] = None
    task_status: Optional[str] = None
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    is_overdue: Optional[bool] = None
    days_since_created: Optional[int] = None
    days_until_due: Optional[int] = None
    has_description: Optional[bool] = None
    has_due_date: Optional[bool] = None
    task_age: Optional[int] = None
    urgency_level: Optional[UrgencyLevel] = None


class SuggestionResponse(CamelModel):
    suggestion: str
    is_from_cache: bool = False
    remaining_count: int


class LimitReachedResponse(CamelModel):
    error: str = "LIMIT_REACHED"
    message: str
    count: int
    limit: int
