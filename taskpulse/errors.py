"""
Error taxonomy for Taskpulse.

Every domain failure carries a machine-readable code and a human-friendly
message. Routers translate these into HTTP status codes; the task state
container translates them into its ``error`` slot.
"""

from typing import Any, Dict, Optional


class TaskPulseError(Exception):
    """Base exception for domain errors"""
    code = "ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        self.message = message
        self.details = details or {}
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(TaskPulseError):
    """Input rejected before any storage or network call."""
    code = "VALIDATION_ERROR"


class NotFoundError(TaskPulseError):
    code = "NOT_FOUND"


class AuthenticationError(TaskPulseError):
    """Sign-in was refused or the identity provider could not be reached."""
    code = "AUTHENTICATION_FAILED"


class DocumentExistsError(TaskPulseError):
    """A generated document id collided with an existing document."""
    code = "ALREADY_EXISTS"


class TaskConflictError(TaskPulseError):
    """Task creation kept colliding after every retry attempt."""
    code = "CONFLICT"

    def __init__(self, message: str = "Unable to create task due to ID conflict. Please try again.",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class QuotaExceededError(TaskPulseError):
    """The user has used up their free suggestions."""
    code = "LIMIT_REACHED"

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(
            f"You've reached your free suggestions limit of {limit} suggestions.",
            {"count": count, "limit": limit},
        )


class GenerationError(TaskPulseError):
    """The text generation provider failed or returned nothing."""
    code = "GENERATION_FAILED"


class GenerationUnavailableError(GenerationError):
    """The text generation provider refused the call for quota or rate reasons."""
    code = "PROVIDER_UNAVAILABLE"
