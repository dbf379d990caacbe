"""Suggestion router: motivational text for a task, capped per user."""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from taskpulse.db.config import SessionFactory, get_session_factory
from taskpulse.errors import GenerationError, GenerationUnavailableError, QuotaExceededError, ValidationError
from taskpulse.middleware.auth import CurrentUser, get_current_user
from taskpulse.schemas.suggestion import LimitReachedResponse, SuggestionRequest, SuggestionResponse
from taskpulse.services.suggestion_service import SuggestionService
from taskpulse.services.text_generation import TextGenerator, get_text_generator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Suggestions"])


def get_suggestion_service(
    session_factory: SessionFactory = Depends(get_session_factory),
    generator: TextGenerator = Depends(get_text_generator),
) -> SuggestionService:
    """Dependency for getting SuggestionService instance."""
    return SuggestionService(session_factory, generator)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/suggestions", response_model=SuggestionResponse)
async def create_suggestion(
    body: SuggestionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """
    Generate a suggestion for a task.

    Responses:
        200: suggestion, isFromCache and remainingCount
        400: owner id or task name missing
        403: owner id belongs to someone else
        429: free suggestions used up (LIMIT_REACHED payload)
        503: AI provider out of quota
        500: generation failed
    """
    if body.user_id and body.user_id != current_user.user_id:
        return _error(status.HTTP_403_FORBIDDEN, "Access denied: You can only access your own resources")

    try:
        result = await service.suggest(body)
    except ValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message)
    except QuotaExceededError as e:
        payload = LimitReachedResponse(message=e.message, count=e.count, limit=e.limit)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=payload.model_dump(by_alias=True),
        )
    except GenerationUnavailableError as e:
        logger.error(f"Suggestion provider unavailable: {e.message}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "AI provider quota exceeded")
    except GenerationError as e:
        logger.error(f"Suggestion generation failed: {e.message}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate suggestion")
    except Exception as e:
        logger.exception(f"Unexpected error generating suggestion: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    return result
