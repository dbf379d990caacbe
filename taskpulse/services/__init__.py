"""Service layer for Taskpulse."""
