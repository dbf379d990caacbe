"""Routers package for Taskpulse."""

from .auth import router as auth_router
from .comments import router as comments_router
from .suggestions import router as suggestions_router
from .tasks import router as tasks_router

__all__ = ["auth_router", "comments_router", "suggestions_router", "tasks_router"]
