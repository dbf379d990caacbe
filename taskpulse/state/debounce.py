"""Idle-time debouncing of free-text task edits."""
import asyncio
import inspect
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from taskpulse.config import AUTOSAVE_DELAY
from taskpulse.state.tasks import OperationResult, TaskStateContainer

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[None]]]

DRAFT_FIELDS = ("title", "description", "due_date")


class Debouncer:
    """
    Run ``callback`` once input has been idle for ``delay`` seconds.

    Each ``trigger()`` restarts the timer, so a burst of triggers results
    in a single call. Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callback):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire_later())

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        await self._run()

    async def _run(self) -> None:
        try:
            result = self.callback()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Debounced callback failed: {e}")

    async def flush(self) -> None:
        """Run a pending callback now instead of waiting for the timer."""
        if not self.pending:
            return
        self.cancel()
        await self._run()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class TaskAutoSaver:
    """
    Draft of a task's title, description and due date, saved after typing stops.

    When the timer fires and the draft differs from the task held by the
    container, exactly one ``edit`` carrying all three fields is dispatched.
    """

    def __init__(self, container: TaskStateContainer, task_id: str, delay: float = AUTOSAVE_DELAY):
        self.container = container
        self.task_id = task_id
        self.draft: Dict[str, Any] = self._current_fields() or {name: None for name in DRAFT_FIELDS}
        self.last_result: Optional[OperationResult] = None
        self._debouncer = Debouncer(delay, self.save)

    def _current_fields(self) -> Optional[Dict[str, Any]]:
        task = self.container.get(self.task_id)
        if task is None:
            return None
        return {
            "title": task.title,
            "description": task.description,
            "due_date": task.due_date[:10] if task.due_date else None,
        }

    def set_field(self, name: str, value: Any) -> None:
        if name not in DRAFT_FIELDS:
            raise ValueError(f"Field {name} is not auto-saved")
        if name == "due_date":
            value = value.isoformat() if isinstance(value, date) else (value or None)
        self.draft[name] = value
        self._debouncer.trigger()

    async def save(self) -> None:
        current = self._current_fields()
        if current is None or current == self.draft:
            return
        self.last_result = await self.container.edit(self.task_id, dict(self.draft))

    async def flush(self) -> None:
        await self._debouncer.flush()

    def close(self) -> None:
        """Drop any unsaved draft change."""
        self._debouncer.cancel()
