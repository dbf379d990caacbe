"""
Client side of the suggestion workflow.

Derives the urgency context for a task, posts it to ``/api/suggestions``
and turns every response into a SuggestionOutcome. Suggestions are never
cached; each request asks the service again.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Set

import httpx

from taskpulse.schemas.suggestion import SuggestionRequest, UrgencyLevel
from taskpulse.schemas.task import TaskRead
from taskpulse.timestamps import parse_iso, utcnow

logger = logging.getLogger(__name__)

CONNECT_ERROR_MESSAGE = "Failed to connect to suggestions service. Please try again."
GENERIC_ERROR_MESSAGE = "Failed to get suggestions. Please try again."
DEFAULT_LIMIT_MESSAGE = "You've reached your free suggestions limit."

_DAY_SECONDS = 24 * 60 * 60


def _days_between(start: datetime, end: datetime) -> int:
    return math.floor((end - start).total_seconds() / _DAY_SECONDS)


def urgency_for(is_overdue: bool, days_until_due: Optional[int]) -> UrgencyLevel:
    if is_overdue:
        return UrgencyLevel.OVERDUE
    if days_until_due is not None and days_until_due <= 1:
        return UrgencyLevel.URGENT
    if days_until_due is not None and days_until_due <= 3:
        return UrgencyLevel.SOON
    return UrgencyLevel.NORMAL


def build_suggestion_request(task: TaskRead, user_id: str, now: Optional[datetime] = None) -> SuggestionRequest:
    """Task context plus the derived date and urgency fields."""
    now = now or utcnow()
    created_at = parse_iso(task.created_at)
    due_at = task.due_at()

    days_since_created = max(_days_between(created_at, now), 0) if created_at else 0
    days_until_due = _days_between(now, due_at) if due_at else None
    is_overdue = task.is_overdue(now)

    return SuggestionRequest(
        user_id=user_id,
        task_name=task.title,
        task_type=task.type.value,
        task_description=task.description,
        task_status=task.status.value,
        due_date=task.due_date,
        created_at=task.created_at,
        completed_at=task.completed_at,
        is_overdue=is_overdue,
        days_since_created=days_since_created,
        days_until_due=days_until_due,
        has_description=bool(task.description and task.description.strip()),
        has_due_date=bool(task.due_date),
        task_age=days_since_created,
        urgency_level=urgency_for(is_overdue, days_until_due),
    )


@dataclass(frozen=True)
class SuggestionOutcome:
    kind: str  # "success", "limit" or "error"
    suggestion: str = ""
    remaining_count: Optional[int] = None
    message: str = ""
    is_from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.kind == "success"


class SuggestionClient:
    """Posts suggestion requests; one request per task at a time."""

    def __init__(self, http: httpx.AsyncClient, token_provider: Callable[[], Optional[str]]):
        self.http = http
        self.token_provider = token_provider
        self._in_flight: Set[str] = set()

    def is_loading(self, task_id: str) -> bool:
        return task_id in self._in_flight

    async def request(self, task: TaskRead, user_id: str, now: Optional[datetime] = None) -> Optional[SuggestionOutcome]:
        """
        Ask for a suggestion for ``task``.

        Returns None without sending anything while a request for the same
        task is still in flight.
        """
        if task.id in self._in_flight:
            return None

        self._in_flight.add(task.id)
        try:
            payload = build_suggestion_request(task, user_id, now)
            headers = {}
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

            try:
                response = await self.http.post(
                    "/api/suggestions",
                    json=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
                    headers=headers,
                )
            except httpx.HTTPError as e:
                logger.error(f"Error fetching suggestions: {e}")
                return SuggestionOutcome(kind="error", message=CONNECT_ERROR_MESSAGE)

            return self._outcome(response)
        finally:
            self._in_flight.discard(task.id)

    @staticmethod
    def _outcome(response: httpx.Response) -> SuggestionOutcome:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code == 429:
            return SuggestionOutcome(
                kind="limit",
                remaining_count=0,
                message=data.get("message") or DEFAULT_LIMIT_MESSAGE,
            )
        if response.is_success:
            return SuggestionOutcome(
                kind="success",
                suggestion=data.get("suggestion", ""),
                remaining_count=data.get("remainingCount"),
                is_from_cache=bool(data.get("isFromCache", False)),
            )
        return SuggestionOutcome(kind="error", message=data.get("error") or GENERIC_ERROR_MESSAGE)
