"""
Task Store

Data access for tasks and their comment counts. Holds no state between
calls: every operation opens a fresh session, and all reads return
serializable TaskRead objects with ISO-8601 timestamps.
"""
import asyncio
import logging
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from taskpulse.config import CREATE_MAX_ATTEMPTS, CREATE_RETRY_DELAY
from taskpulse.db.config import SessionFactory
from taskpulse.errors import DocumentExistsError, NotFoundError, TaskConflictError, ValidationError
from taskpulse.models.comment import Comment
from taskpulse.models.task import Task, TaskStatus, generate_client_id, generate_document_id
from taskpulse.schemas.task import TaskCreate, TaskRead, TaskUpdate
from taskpulse.timestamps import parse_iso, utcnow

logger = logging.getLogger(__name__)


def _compare_newest_first(a: TaskRead, b: TaskRead) -> int:
    # Missing timestamps compare equal to anything
    if not a.created_at or not b.created_at:
        return 0
    a_time = parse_iso(a.created_at)
    b_time = parse_iso(b.created_at)
    if a_time == b_time:
        return 0
    return -1 if a_time > b_time else 1


def sort_newest_first(tasks: Iterable[TaskRead]) -> List[TaskRead]:
    """Client-side equivalent of ``ORDER BY created_at DESC`` (stable)."""
    return sorted(tasks, key=cmp_to_key(_compare_newest_first))


class TaskStore:
    """Task persistence with collision-retrying creates and an index-free list fallback."""

    def __init__(
        self,
        session_factory: SessionFactory,
        id_factory: Callable[[], str] = generate_document_id,
        retry_delay: float = CREATE_RETRY_DELAY,
        max_attempts: int = CREATE_MAX_ATTEMPTS,
    ):
        self.session_factory = session_factory
        self.id_factory = id_factory
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, user_id: str, task_data: Union[TaskCreate, Mapping[str, Any]]) -> str:
        """
        Create a task for a user and return its id.

        Args:
            user_id: Owner of the new task
            task_data: TaskCreate or a mapping accepted by it

        Returns:
            The generated task id

        Raises:
            ValidationError: user_id is empty (raised before any database work)
            TaskConflictError: every attempt collided with an existing id
        """
        if not user_id:
            raise ValidationError("User ID is required", {"field": "user_id"})

        data = task_data if isinstance(task_data, TaskCreate) else TaskCreate.model_validate(task_data)

        attempt = 1
        while True:
            try:
                task_id = await asyncio.to_thread(self._insert, user_id, data)
                logger.info(f"Task {task_id} created for user {user_id} (attempt {attempt})")
                return task_id
            except DocumentExistsError as e:
                if attempt >= self.max_attempts:
                    logger.error(f"Task creation for user {user_id} failed after {attempt} attempts: {e.message}")
                    raise TaskConflictError(details={"attempts": attempt}) from e

                logger.warning(f"Task id collision for user {user_id} (attempt {attempt}), retrying")
                await asyncio.sleep(self.retry_delay * attempt)
                attempt += 1

    def _insert(self, user_id: str, data: TaskCreate) -> str:
        now = utcnow()
        task = Task(
            id=self.id_factory(),
            user_id=user_id,
            title=data.title,
            description=data.description,
            status=data.status.value,
            type=data.type.value,
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
            completed_at=now if data.status == TaskStatus.COMPLETED else None,
            client_id=generate_client_id(user_id, now),
        )

        with self.session_factory() as session:
            if session.get(Task, task.id) is not None:
                raise DocumentExistsError("Document already exists", {"task_id": task.id})
            session.add(task)
            try:
                session.commit()
            except IntegrityError as e:
                # The primary key is the only unique constraint on tasks
                session.rollback()
                raise DocumentExistsError("Document already exists", {"task_id": task.id}) from e
            return task.id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, task_id: str) -> Optional[TaskRead]:
        """Get a single task by id, or None."""
        return await asyncio.to_thread(self._get, task_id)

    def _get(self, task_id: str) -> Optional[TaskRead]:
        with self.session_factory() as session:
            task = session.get(Task, task_id)
            return TaskRead.from_model(task) if task else None

    async def list_by_user(self, user_id: str) -> List[TaskRead]:
        """
        List a user's tasks, newest first.

        Uses the (user_id, created_at) ordered query. If that query fails,
        falls back to an unordered query sorted in memory; callers see the
        same result either way.
        """
        try:
            tasks = await asyncio.to_thread(self._list_ordered, user_id)
            logger.debug(f"Fetched {len(tasks)} tasks for user {user_id} with ordered query")
            return tasks
        except SQLAlchemyError as e:
            logger.warning(f"Ordered task query failed, falling back to client-side sorting: {e}")

        tasks = sort_newest_first(await asyncio.to_thread(self._list_unordered, user_id))
        logger.debug(f"Fetched {len(tasks)} tasks for user {user_id} with client-side sorting")
        return tasks

    def _list_ordered(self, user_id: str) -> List[TaskRead]:
        statement = (
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(Task.created_at.desc())
        )
        with self.session_factory() as session:
            return [TaskRead.from_model(task) for task in session.exec(statement).all()]

    def _list_unordered(self, user_id: str) -> List[TaskRead]:
        statement = select(Task).where(Task.user_id == user_id)
        with self.session_factory() as session:
            return [TaskRead.from_model(task) for task in session.exec(statement).all()]

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update(self, task_id: str, partial: Union[TaskUpdate, Mapping[str, Any]]) -> None:
        """
        Merge the given fields into a task and refresh updated_at.

        Fields absent from ``partial`` are never touched.

        Raises:
            NotFoundError: no task with this id
        """
        update = partial if isinstance(partial, TaskUpdate) else TaskUpdate.model_validate(partial)
        await asyncio.to_thread(self._update, task_id, update.storage_fields())

    def _update(self, task_id: str, fields: Dict[str, Any]) -> None:
        with self.session_factory() as session:
            task = session.get(Task, task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found", {"task_id": task_id})

            for key, value in fields.items():
                setattr(task, key, value)
            task.updated_at = utcnow()

            session.add(task)
            session.commit()
        logger.info(f"Task {task_id} updated: {sorted(fields)}")

    # ------------------------------------------------------------------
    # Comment counts (advisory)
    # ------------------------------------------------------------------

    async def comment_count(self, task_id: str) -> int:
        """Number of comments on a task; 0 if the count cannot be read."""
        try:
            return await asyncio.to_thread(self._comment_count, task_id)
        except Exception as e:
            logger.warning(f"Error getting comment count for task {task_id}: {e}")
            return 0

    def _comment_count(self, task_id: str) -> int:
        statement = select(func.count()).select_from(Comment).where(Comment.task_id == task_id)
        with self.session_factory() as session:
            return int(session.exec(statement).one())

    async def comment_counts(self, task_ids: Iterable[str]) -> Dict[str, int]:
        """Comment counts for many tasks, fetched concurrently; {} on total failure."""
        try:
            ids = list(task_ids)
            counts = await asyncio.gather(*(self.comment_count(task_id) for task_id in ids))
            return dict(zip(ids, counts))
        except Exception as e:
            logger.error(f"Error getting comment counts: {e}")
            return {}
