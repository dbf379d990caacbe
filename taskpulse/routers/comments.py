"""Comment router: REST access plus a WebSocket stream of live snapshots."""
import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from taskpulse.db.config import SessionFactory, get_session_factory
from taskpulse.errors import TaskPulseError
from taskpulse.middleware.auth import CurrentUser, decode_token, get_current_user
from taskpulse.routers.errors import to_http_exception
from taskpulse.schemas.comment import CommentCountResponse, CommentCreate, CommentRead
from taskpulse.services.comment_service import CommentService
from taskpulse.services.task_store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Comments"])


def get_comment_service(session_factory: SessionFactory = Depends(get_session_factory)) -> CommentService:
    """Dependency for getting CommentService instance."""
    return CommentService(session_factory)


def get_task_store(session_factory: SessionFactory = Depends(get_session_factory)) -> TaskStore:
    return TaskStore(session_factory)


@router.get("/tasks/{task_id}/comments", response_model=List[CommentRead])
async def list_comments(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    """Comments on a task, oldest first."""
    return await service.list_comments(task_id)


@router.post("/tasks/{task_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def add_comment(
    task_id: str,
    body: CommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    """Add a comment authored by the current user."""
    author_name = current_user.display_name or current_user.email or "Anonymous"
    try:
        return await service.add_comment(task_id, current_user.user_id, author_name, body.text)
    except TaskPulseError as e:
        raise to_http_exception(e)


@router.get("/tasks/{task_id}/comments/count", response_model=CommentCountResponse)
async def count_comments(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    return CommentCountResponse(task_id=task_id, count=await store.comment_count(task_id))


@router.websocket("/tasks/{task_id}/comments/ws")
async def stream_comments(
    websocket: WebSocket,
    task_id: str,
    token: str = Query(""),
    service: CommentService = Depends(get_comment_service),
):
    """
    Push the full comment list for a task every time it changes.

    The first message is the current list. The subscription is released
    as soon as the client disconnects.
    """
    try:
        user = decode_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info(f"User {user.user_id} watching comments of task {task_id}")

    async with service.subscribe(task_id) as subscription:
        # Client messages are ignored; reading them is how a disconnect is noticed
        receiver = asyncio.create_task(_drain(websocket))
        try:
            while True:
                next_snapshot = asyncio.create_task(subscription.next_snapshot())
                done, _ = await asyncio.wait(
                    {receiver, next_snapshot}, return_when=asyncio.FIRST_COMPLETED
                )
                if receiver in done:
                    next_snapshot.cancel()
                    break
                snapshot = next_snapshot.result()
                if snapshot is None:
                    break
                await websocket.send_json(jsonable_encoder(snapshot, by_alias=True))
        except WebSocketDisconnect:
            pass
        finally:
            receiver.cancel()

    logger.info(f"User {user.user_id} stopped watching comments of task {task_id}")


async def _drain(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return
