"""SQLModel tables for Taskpulse."""

from .comment import Comment
from .suggestion import Suggestion
from .task import Task, TaskStatus, TaskType
from .user import User
from .user_stats import UserStats

__all__ = ["Comment", "Suggestion", "Task", "TaskStatus", "TaskType", "User", "UserStats"]
