"""Translate domain errors into HTTP responses."""
from fastapi import HTTPException, status

from taskpulse.errors import (
    GenerationError,
    GenerationUnavailableError,
    NotFoundError,
    TaskConflictError,
    TaskPulseError,
    ValidationError,
)

_STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TaskConflictError, status.HTTP_409_CONFLICT),
    (GenerationUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GenerationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def to_http_exception(error: TaskPulseError) -> HTTPException:
    """Map a domain error onto an HTTPException carrying its message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)
