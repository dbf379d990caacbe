"""
Comment Service

Create and read comments on a task, and stream live snapshots of a task's
comment list to subscribers.

Every change to a task's comments is delivered to its subscribers as the
full list ordered by creation time. Subscriptions are scoped: they are
released when the ``subscribe`` context exits, whichever way it exits.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Set

from sqlmodel import select

from taskpulse.db.config import SessionFactory
from taskpulse.errors import NotFoundError, ValidationError
from taskpulse.models.comment import Comment
from taskpulse.models.task import Task
from taskpulse.schemas.comment import CommentRead
from taskpulse.timestamps import utcnow

logger = logging.getLogger(__name__)

Snapshot = List[CommentRead]


class CommentSubscription:
    """Handle for one live view of a task's comments."""

    def __init__(self, feed: "CommentFeed", task_id: str):
        self.task_id = task_id
        self._feed = feed
        self._queue: "asyncio.Queue[Optional[Snapshot]]" = asyncio.Queue()
        self._received_live = False
        self.closed = False

    def deliver(self, snapshot: Snapshot) -> None:
        """Queue a snapshot; older undelivered snapshots are superseded."""
        if self.closed:
            return
        self._received_live = True
        self._replace_pending(snapshot)

    def deliver_initial(self, snapshot: Snapshot) -> None:
        # A live snapshot that raced the initial read is newer; keep it
        if self.closed or self._received_live:
            return
        self._replace_pending(snapshot)

    def _replace_pending(self, snapshot: Snapshot) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(list(snapshot))

    async def next_snapshot(self) -> Optional[Snapshot]:
        """Wait for the next snapshot; None once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def __aiter__(self) -> "CommentSubscription":
        return self

    async def __anext__(self) -> Snapshot:
        snapshot = await self.next_snapshot()
        if snapshot is None:
            raise StopAsyncIteration
        return snapshot

    def close(self) -> None:
        """Release the subscription. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._feed.remove(self)
        # Wake a consumer blocked in next_snapshot()
        self._queue.put_nowait(None)


class CommentFeed:
    """In-process registry of comment subscriptions, keyed by task id."""

    def __init__(self):
        self._subscribers: Dict[str, Set[CommentSubscription]] = {}
        self._writers: Dict[str, asyncio.Lock] = {}
        self._writer_counts: Dict[str, int] = {}

    def open(self, task_id: str) -> CommentSubscription:
        subscription = CommentSubscription(self, task_id)
        self._subscribers.setdefault(task_id, set()).add(subscription)
        logger.debug(f"Comment subscription opened for task {task_id}")
        return subscription

    def remove(self, subscription: CommentSubscription) -> None:
        subscribers = self._subscribers.get(subscription.task_id)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.task_id]
        logger.debug(f"Comment subscription released for task {subscription.task_id}")

    def publish(self, task_id: str, snapshot: Snapshot) -> None:
        for subscription in list(self._subscribers.get(task_id, ())):
            subscription.deliver(snapshot)

    @asynccontextmanager
    async def writing(self, task_id: str) -> AsyncIterator[None]:
        """Serialize write-then-publish for one task so snapshots go out in order."""
        lock = self._writers.setdefault(task_id, asyncio.Lock())
        self._writer_counts[task_id] = self._writer_counts.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._writer_counts[task_id] -= 1
            if not self._writer_counts[task_id]:
                del self._writer_counts[task_id]
                del self._writers[task_id]

    def subscriber_count(self, task_id: Optional[str] = None) -> int:
        if task_id is not None:
            return len(self._subscribers.get(task_id, ()))
        return sum(len(subs) for subs in self._subscribers.values())


# Process-wide feed shared by every request
comment_feed = CommentFeed()


class CommentService:
    """Service for managing comments on tasks"""

    def __init__(self, session_factory: SessionFactory, feed: CommentFeed = comment_feed):
        self.session_factory = session_factory
        self.feed = feed

    async def list_comments(self, task_id: str) -> Snapshot:
        """Comments for a task, oldest first."""
        return await asyncio.to_thread(self._list, task_id)

    def _list(self, task_id: str) -> Snapshot:
        statement = (
            select(Comment)
            .where(Comment.task_id == task_id)
            .order_by(Comment.created_at.asc())
        )
        with self.session_factory() as session:
            return [CommentRead.from_model(comment) for comment in session.exec(statement).all()]

    async def add_comment(self, task_id: str, author_id: str, author_name: str, text: str) -> CommentRead:
        """
        Add a comment to a task and notify subscribers.

        Raises:
            ValidationError: text is empty after trimming, or no author
            NotFoundError: the task does not exist
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required", {"field": "text"})
        if not author_id:
            raise ValidationError("Author ID is required", {"field": "author_id"})

        async with self.feed.writing(task_id):
            comment = await asyncio.to_thread(self._insert, task_id, author_id, author_name, text)
            logger.info(f"Comment {comment.id} added to task {task_id} by {author_id}")
            self.feed.publish(task_id, await self.list_comments(task_id))
        return comment

    def _insert(self, task_id: str, author_id: str, author_name: str, text: str) -> CommentRead:
        with self.session_factory() as session:
            if session.get(Task, task_id) is None:
                raise NotFoundError(f"Task {task_id} not found", {"task_id": task_id})

            comment = Comment(
                task_id=task_id,
                text=text,
                author_id=author_id,
                author_name=author_name or "",
                created_at=utcnow(),
            )
            session.add(comment)
            session.commit()
            session.refresh(comment)
            return CommentRead.from_model(comment)

    @asynccontextmanager
    async def subscribe(self, task_id: str) -> AsyncIterator[CommentSubscription]:
        """
        Open a live subscription to a task's comments.

        The current snapshot is queued immediately. Usage::

            async with service.subscribe(task_id) as subscription:
                async for comments in subscription:
                    ...
        """
        subscription = self.feed.open(task_id)
        try:
            subscription.deliver_initial(await self.list_comments(task_id))
            yield subscription
        finally:
            subscription.close()
