"""Main FastAPI application for the Taskpulse backend."""
import logging

from fastapi import FastAPI

from taskpulse import __version__
from taskpulse.config import APP_NAME, LOG_LEVEL
from taskpulse.db.init import init_db
from taskpulse.logging_setup import setup_logging
from taskpulse.middleware.cors import add_cors_middleware
from taskpulse.routers import auth_router, comments_router, suggestions_router, tasks_router

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Taskpulse API",
    description="Task tracking with comments and AI suggestions",
    version=__version__,
)

# Add CORS middleware
add_cors_middleware(app)


@app.on_event("startup")
async def startup_event():
    """Configure logging and initialize database tables."""
    setup_logging(LOG_LEVEL)
    try:
        init_db()
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        logger.warning("Server will continue but database operations may fail")

    logger.info(f"{APP_NAME} startup complete")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Taskpulse API",
        "title": "Taskpulse API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(auth_router, prefix="/auth")  # /auth/sign-up, /auth/sign-in
app.include_router(tasks_router, prefix="/api")  # /api/{user_id}/tasks
app.include_router(comments_router, prefix="/api")  # /api/tasks/{task_id}/comments
app.include_router(suggestions_router, prefix="/api")  # /api/suggestions


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "taskpulse.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
