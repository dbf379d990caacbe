"""
Derived task view: status/type filtering and 1-based pagination.

``project`` is a pure function of its arguments. ``TaskListView`` owns the
user's filter and page inputs and memoizes the last projection.
"""
import math
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from taskpulse.config import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS
from taskpulse.errors import ValidationError
from taskpulse.models.task import TaskStatus, TaskType
from taskpulse.schemas.task import TaskRead

ALL = "all"

_STATUS_VALUES = {ALL} | {s.value for s in TaskStatus}
_TYPE_VALUES = {ALL} | {t.value for t in TaskType}


@dataclass(frozen=True)
class TaskFilters:
    status: str = ALL
    type: str = ALL

    def __post_init__(self):
        if self.status not in _STATUS_VALUES:
            raise ValidationError(f"Unknown status filter: {self.status}", {"field": "status"})
        if self.type not in _TYPE_VALUES:
            raise ValidationError(f"Unknown type filter: {self.type}", {"field": "type"})

    def matches(self, task: TaskRead) -> bool:
        if self.status != ALL and task.status.value != self.status:
            return False
        if self.type != ALL and task.type.value != self.type:
            return False
        return True


@dataclass(frozen=True)
class PageRequest:
    index: int = 1
    size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if self.size < 1:
            raise ValidationError("Page size must be positive", {"field": "size"})
        if self.index < 1:
            raise ValidationError("Page index starts at 1", {"field": "index"})


@dataclass(frozen=True)
class Projection:
    filtered: Tuple[TaskRead, ...]
    total_pages: int
    page_items: Tuple[TaskRead, ...]


def project(tasks: Sequence[TaskRead], filters: TaskFilters, page: PageRequest) -> Projection:
    """
    Filter ``tasks`` and cut out one page.

    Filters are ANDed; "all" disables a filter. The page index is not
    clamped: an index past the last page yields an empty page.
    """
    filtered = tuple(task for task in tasks if filters.matches(task))
    total_pages = math.ceil(len(filtered) / page.size)
    start = (page.index - 1) * page.size
    return Projection(
        filtered=filtered,
        total_pages=total_pages,
        page_items=filtered[start:start + page.size],
    )


class TaskListView:
    """Filter and page inputs for a task list, with a memoized projection."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        self._check_page_size(page_size)
        self.filters = TaskFilters()
        self.page = PageRequest(index=1, size=page_size)
        self._memo_key: Optional[tuple] = None
        self._memo_tasks: Optional[Sequence[TaskRead]] = None
        self._memo: Optional[Projection] = None

    @staticmethod
    def _check_page_size(size: int) -> None:
        if size not in PAGE_SIZE_OPTIONS:
            raise ValidationError(f"Page size must be one of {list(PAGE_SIZE_OPTIONS)}", {"field": "size"})

    def set_filter(self, name: str, value: str) -> None:
        """Change the status or type filter; the page goes back to 1."""
        if name not in ("status", "type"):
            raise ValidationError(f"Unknown filter: {name}", {"field": name})
        self.filters = replace(self.filters, **{name: value})
        self.page = replace(self.page, index=1)

    def set_page(self, index: int) -> None:
        self.page = replace(self.page, index=index)

    def set_page_size(self, size: int) -> None:
        """Change the page size; the page goes back to 1."""
        self._check_page_size(size)
        self.page = PageRequest(index=1, size=size)

    def select(self, tasks: Sequence[TaskRead]) -> Projection:
        # Task collections are replaced, never mutated, so identity is enough
        key = (self.filters, self.page)
        if self._memo is None or self._memo_key != key or self._memo_tasks is not tasks:
            self._memo = project(tasks, self.filters, self.page)
            self._memo_key = key
            self._memo_tasks = tasks
        return self._memo
