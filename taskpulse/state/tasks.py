"""
Task State Container

Holds the signed-in user's task collection and runs every store operation
as pending -> fulfilled | rejected. Each phase replaces the immutable
TaskState and notifies listeners. Failures land in ``state.error``; no
exception escapes the container. Operations still running when the
container is cleared do not write their results back.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple

from taskpulse.errors import NotFoundError, TaskPulseError, ValidationError
from taskpulse.models.task import TaskStatus, coerce_status, next_status, status_transition_fields
from taskpulse.schemas.task import TaskRead, TaskUpdate
from taskpulse.services.task_store import TaskStore
from taskpulse.timestamps import to_iso, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskState:
    tasks: Tuple[TaskRead, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    last_updated: Optional[str] = None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one container operation."""
    ok: bool
    payload: Any = None
    error: Optional[str] = None


Listener = Callable[[TaskState], None]


def _error_message(error: Exception) -> str:
    if isinstance(error, TaskPulseError):
        return error.message
    return str(error) or error.__class__.__name__


class TaskStateContainer:
    """Single owner of the task collection shown to the user."""

    def __init__(self, store: TaskStore):
        self.store = store
        self._state = TaskState()
        self._listeners: List[Listener] = []
        self._in_flight: Set[str] = set()
        # Bumped by clear(); results from an older epoch are dropped
        self._epoch = 0

    @property
    def state(self) -> TaskState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for every new state; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _stale(self, epoch: int, operation: str) -> bool:
        if epoch == self._epoch:
            return False
        logger.debug(f"Task operation {operation} finished after clear, result dropped")
        return True

    def _set(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error(f"Task state listener failed: {e}")

    def _reject(self, operation: str, error: Exception, epoch: Optional[int] = None, **changes: Any) -> OperationResult:
        message = _error_message(error)
        logger.warning(f"Task operation {operation} rejected: {message}")
        if epoch is None or epoch == self._epoch:
            self._set(error=message, **changes)
        return OperationResult(ok=False, error=message)

    # ------------------------------------------------------------------
    # Store-backed operations
    # ------------------------------------------------------------------

    async def fetch_all(self, user_id: str) -> OperationResult:
        """Replace the collection with the user's tasks, newest first."""
        epoch = self._epoch
        self._set(loading=True, error=None)
        try:
            tasks = await self.store.list_by_user(user_id)
        except Exception as e:
            return self._reject("fetch_all", e, epoch=epoch, loading=False)

        if self._stale(epoch, "fetch_all"):
            return OperationResult(ok=False, error="Cleared before completion")
        self._set(tasks=tuple(tasks), loading=False, last_updated=to_iso(utcnow()))
        return OperationResult(ok=True, payload=tasks)

    async def create(self, user_id: str, task_data: Any) -> OperationResult:
        """Create a task and prepend it once the store has assigned its timestamps."""
        epoch = self._epoch
        self._set(loading=True, error=None)
        try:
            task_id = await self.store.create(user_id, task_data)
            task = await self.store.get(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found after create", {"task_id": task_id})
        except Exception as e:
            return self._reject("create", e, epoch=epoch, loading=False)

        if self._stale(epoch, "create"):
            return OperationResult(ok=True, payload=task)
        self._set(tasks=(task,) + self._state.tasks, loading=False)
        return OperationResult(ok=True, payload=task)

    async def edit(self, task_id: str, partial: Any) -> OperationResult:
        """
        Write ``partial`` to the store, then merge it into the local task.

        Does not touch ``loading``. A task missing locally is left alone.
        """
        epoch = self._epoch
        self._set(error=None)
        try:
            update = partial if isinstance(partial, TaskUpdate) else TaskUpdate.model_validate(partial)
            await self.store.update(task_id, update)
        except Exception as e:
            return self._reject("edit", e, epoch=epoch)

        fields = update.read_fields()
        if self._stale(epoch, "edit"):
            return OperationResult(ok=True, payload=fields)
        self._merge(task_id, fields)
        return OperationResult(ok=True, payload=fields)

    # ------------------------------------------------------------------
    # Local operations
    # ------------------------------------------------------------------

    def patch_local(self, task_id: str, updates: Mapping[str, Any]) -> None:
        """Shallow-merge ``updates`` into the local task right away."""
        self._merge(task_id, updates)

    def _merge(self, task_id: str, updates: Mapping[str, Any]) -> None:
        if not any(task.id == task_id for task in self._state.tasks):
            return
        tasks = tuple(
            task.merged(updates) if task.id == task_id else task
            for task in self._state.tasks
        )
        self._set(tasks=tasks)

    def clear(self) -> None:
        """Back to the initial empty state (sign-out)."""
        self._epoch += 1
        self._in_flight.clear()
        self._state = TaskState()
        self._set()

    def clear_error(self) -> None:
        self._set(error=None)

    def get(self, task_id: str) -> Optional[TaskRead]:
        for task in self._state.tasks:
            if task.id == task_id:
                return task
        return None

    def is_pending(self, task_id: str) -> bool:
        """True while a status change for this task is in flight."""
        return task_id in self._in_flight

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def toggle_status(self, task_id: str, now: Optional[datetime] = None) -> Optional[OperationResult]:
        """
        Advance a task along pending -> in-progress -> completed.

        Completed tasks are not advanced by the toggle; None is returned and
        nothing is written. None is also returned for unknown tasks and for
        tasks whose previous change is still in flight.
        """
        task = self.get(task_id)
        if task is None or task.status == TaskStatus.COMPLETED:
            return None
        return await self._change_status(task, next_status(task.status), now)

    async def set_status(self, task_id: str, status: Any, now: Optional[datetime] = None) -> Optional[OperationResult]:
        """Move a task straight to ``status``; leaving completed clears completedAt."""
        task = self.get(task_id)
        if task is None:
            return None
        try:
            new_status = TaskStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in TaskStatus)
            return self._reject(
                "set_status",
                ValidationError(f"Invalid status '{status}'. Must be one of: {allowed}", {"field": "status"}),
            )
        if new_status == coerce_status(task.status):
            return None
        return await self._change_status(task, new_status, now)

    async def _change_status(self, task: TaskRead, new_status: TaskStatus, now: Optional[datetime]) -> Optional[OperationResult]:
        if task.id in self._in_flight:
            logger.debug(f"Status change for task {task.id} ignored, previous change in flight")
            return None

        fields: Dict[str, Any] = status_transition_fields(task.status, new_status, now)
        original = {key: getattr(task, key) for key in fields}

        epoch = self._epoch
        self._in_flight.add(task.id)
        try:
            self.patch_local(task.id, fields)
            result = await self.edit(task.id, fields)
            if not result.ok and epoch == self._epoch:
                self.patch_local(task.id, original)
            return result
        finally:
            if epoch == self._epoch:
                self._in_flight.discard(task.id)
