"""Task router for Taskpulse."""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskpulse.config import DEFAULT_PAGE_SIZE
from taskpulse.db.config import SessionFactory, get_session_factory
from taskpulse.errors import TaskPulseError
from taskpulse.middleware.auth import CurrentUser, get_current_user, verify_user_access
from taskpulse.models.task import status_transition_fields
from taskpulse.routers.errors import to_http_exception
from taskpulse.schemas.task import TaskCreate, TaskListResponse, TaskRead, TaskStatusUpdate, TaskUpdate
from taskpulse.services.task_store import TaskStore
from taskpulse.state.view import PageRequest, TaskFilters, project

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix


def get_task_store(session_factory: SessionFactory = Depends(get_session_factory)) -> TaskStore:
    """Dependency for getting TaskStore instance."""
    return TaskStore(session_factory)


async def _get_owned_task(store: TaskStore, user_id: str, task_id: str) -> TaskRead:
    task = await store.get(task_id)
    # Tasks of other users are reported as missing
    if task is None or task.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.get("/{user_id}/tasks", response_model=TaskListResponse)
async def list_tasks(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    status_filter: str = Query("all", alias="status", description="Filter by status: all, pending, in-progress, completed"),
    type_filter: str = Query("all", alias="type", description="Filter by type: all, task, bug, feature, improvement"),
    page: int = Query(1, ge=1, description="1-based page index"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
):
    """List the user's tasks newest first, filtered and paginated."""
    verify_user_access(user_id, current_user)

    try:
        tasks = await store.list_by_user(user_id)
        projection = project(
            tasks,
            TaskFilters(status=status_filter, type=type_filter),
            PageRequest(index=page, size=page_size),
        )
    except TaskPulseError as e:
        raise to_http_exception(e)

    return TaskListResponse(
        tasks=list(projection.page_items),
        count=len(projection.filtered),
        total_pages=projection.total_pages,
        page=page,
        page_size=page_size,
    )


@router.post("/{user_id}/tasks", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    user_id: str,
    task_data: TaskCreate,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    """Create a new task for the authenticated user."""
    verify_user_access(user_id, current_user)

    try:
        task_id = await store.create(user_id, task_data)
    except TaskPulseError as e:
        raise to_http_exception(e)

    return await store.get(task_id)


@router.get("/{user_id}/tasks/comment-counts", response_model=Dict[str, int])
async def get_comment_counts(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    """Comment count for each of the user's tasks."""
    verify_user_access(user_id, current_user)

    tasks = await store.list_by_user(user_id)
    return await store.comment_counts(task.id for task in tasks)


@router.get("/{user_id}/tasks/{task_id}", response_model=TaskRead)
async def get_task(
    user_id: str,
    task_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    """Get a specific task by ID."""
    verify_user_access(user_id, current_user)
    return await _get_owned_task(store, user_id, task_id)


@router.patch("/{user_id}/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    user_id: str,
    task_id: str,
    task_data: TaskUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    """Merge the given fields into a task."""
    verify_user_access(user_id, current_user)
    await _get_owned_task(store, user_id, task_id)

    try:
        await store.update(task_id, task_data)
    except TaskPulseError as e:
        raise to_http_exception(e)

    return await store.get(task_id)


@router.patch("/{user_id}/tasks/{task_id}/status", response_model=TaskRead)
async def set_task_status(
    user_id: str,
    task_id: str,
    body: TaskStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
):
    """Set a task's status, stamping or clearing completedAt as needed."""
    verify_user_access(user_id, current_user)
    task = await _get_owned_task(store, user_id, task_id)

    try:
        await store.update(task_id, status_transition_fields(task.status, body.status))
    except TaskPulseError as e:
        raise to_http_exception(e)

    return await store.get(task_id)
