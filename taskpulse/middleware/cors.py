"""CORS configuration for browser clients of the Taskpulse API."""
import logging
from typing import List

from fastapi.middleware.cors import CORSMiddleware

from taskpulse.config import CORS_ORIGINS, FRONTEND_URL

logger = logging.getLogger(__name__)


def allowed_origins() -> List[str]:
    """Configured origins plus the frontend URL, without duplicates."""
    origins = [origin for origin in CORS_ORIGINS if origin]
    if FRONTEND_URL and FRONTEND_URL not in origins:
        origins.append(FRONTEND_URL)
    return origins


def add_cors_middleware(app):
    origins = allowed_origins()
    logger.info(f"CORS origins: {origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
