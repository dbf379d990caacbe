"""Taskpulse: task tracking service with an async state layer and AI suggestions."""

__version__ = "1.0.0"
