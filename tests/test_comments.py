# tests/test_comments.py

from __future__ import annotations

import asyncio
import time

import pytest

from taskpulse.errors import NotFoundError, ValidationError
from taskpulse.services.comment_service import CommentFeed, CommentService


@pytest.mark.asyncio
async def test_comments_are_listed_oldest_first(store, comment_service: CommentService) -> None:
    task_id = await store.create("U1", {"title": "Write report"})

    await comment_service.add_comment(task_id, "U1", "Uma", "first")
    created = await comment_service.add_comment(task_id, "U2", "Ravi", "  second  ")

    assert created.text == "second"
    comments = await comment_service.list_comments(task_id)
    assert [c.text for c in comments] == ["first", "second"]
    assert [c.author_name for c in comments] == ["Uma", "Ravi"]


@pytest.mark.asyncio
async def test_add_comment_validation(store, comment_service: CommentService) -> None:
    task_id = await store.create("U1", {"title": "Write report"})

    with pytest.raises(ValidationError):
        await comment_service.add_comment(task_id, "U1", "Uma", "   ")
    with pytest.raises(NotFoundError):
        await comment_service.add_comment("missing", "U1", "Uma", "hello")


@pytest.mark.asyncio
async def test_subscription_streams_snapshots_and_is_released(
    store, comment_service: CommentService, feed: CommentFeed
) -> None:
    task_id = await store.create("U1", {"title": "Write report"})
    await comment_service.add_comment(task_id, "U1", "Uma", "existing")

    async with comment_service.subscribe(task_id) as subscription:
        assert feed.subscriber_count(task_id) == 1
        initial = await subscription.next_snapshot()
        assert [c.text for c in initial] == ["existing"]

        await comment_service.add_comment(task_id, "U2", "Ravi", "new one")
        update = await subscription.next_snapshot()
        assert [c.text for c in update] == ["existing", "new one"]

    assert feed.subscriber_count() == 0
    assert await subscription.next_snapshot() is None


@pytest.mark.asyncio
async def test_subscription_released_when_body_raises(
    store, comment_service: CommentService, feed: CommentFeed
) -> None:
    task_id = await store.create("U1", {"title": "Write report"})

    with pytest.raises(RuntimeError):
        async with comment_service.subscribe(task_id):
            raise RuntimeError("view crashed")

    assert feed.subscriber_count(task_id) == 0


@pytest.mark.asyncio
async def test_subscription_released_when_consumer_cancelled(
    store, comment_service: CommentService, feed: CommentFeed
) -> None:
    task_id = await store.create("U1", {"title": "Write report"})
    received = []

    async def watch():
        async with comment_service.subscribe(task_id) as subscription:
            async for snapshot in subscription:
                received.append(snapshot)

    watcher = asyncio.create_task(watch())
    while not received:
        await asyncio.sleep(0.01)
    assert feed.subscriber_count(task_id) == 1

    watcher.cancel()
    with pytest.raises(asyncio.CancelledError):
        await watcher

    assert feed.subscriber_count(task_id) == 0


@pytest.mark.asyncio
async def test_publish_only_reaches_same_task(store, comment_service: CommentService) -> None:
    watched = await store.create("U1", {"title": "watched"})
    other = await store.create("U1", {"title": "other"})

    async with comment_service.subscribe(watched) as subscription:
        await subscription.next_snapshot()
        await comment_service.add_comment(other, "U1", "Uma", "elsewhere")
        await comment_service.add_comment(watched, "U1", "Uma", "here")

        snapshot = await subscription.next_snapshot()
        assert [c.text for c in snapshot] == ["here"]


@pytest.mark.asyncio
async def test_concurrent_comments_leave_latest_snapshot(
    store, comment_service: CommentService, feed: CommentFeed, monkeypatch
) -> None:
    task_id = await store.create("U1", {"title": "Write report"})
    real_list = comment_service._list
    reads = []

    def slow_first_read(tid):
        rows = real_list(tid)
        reads.append(len(rows))
        if len(reads) == 1:
            # Hold the first writer's stale read past the second writer
            time.sleep(0.05)
        return rows

    async with comment_service.subscribe(task_id) as subscription:
        await subscription.next_snapshot()
        monkeypatch.setattr(comment_service, "_list", slow_first_read)

        await asyncio.gather(
            comment_service.add_comment(task_id, "U1", "Uma", "first"),
            comment_service.add_comment(task_id, "U2", "Ravi", "second"),
        )

        latest = await subscription.next_snapshot()
        assert len(latest) == 2

    assert feed.subscriber_count() == 0
