"""Configuration for the Taskpulse service, read from the environment (+ optional .env)."""
import os

from dotenv import load_dotenv

# Load environment variables from a local .env without overriding real ones
load_dotenv(override=False)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Application
APP_NAME = os.environ.get("APP_NAME", "taskpulse")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
# Comma-separated browser origins allowed by CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
]

# Database: SQLite file for local development, PostgreSQL in production
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskpulse.db")

# Authentication
AUTH_SECRET = os.environ.get("AUTH_SECRET", "change-me-in-production")
AUTH_ALGORITHM = "HS256"
AUTH_TOKEN_DAYS = _env_int("AUTH_TOKEN_DAYS", 7)

# Text generation provider (Cohere)
COHERE_API_KEY = os.environ.get("COHERE_API_KEY")
COHERE_MODEL = os.environ.get("COHERE_MODEL", "command-r")
COHERE_TEMPERATURE = _env_float("COHERE_TEMPERATURE", 0.9)
COHERE_MAX_TOKENS = _env_int("COHERE_MAX_TOKENS", 100)

# Suggestions quota
SUGGESTION_LIMIT = _env_int("SUGGESTION_LIMIT", 20)

# Task creation retry on document id collision
CREATE_MAX_ATTEMPTS = 3
CREATE_RETRY_DELAY = _env_float("CREATE_RETRY_DELAY", 0.1)  # seconds, multiplied by attempt

# Client-side state layer
AUTOSAVE_DELAY = _env_float("AUTOSAVE_DELAY", 1.0)  # seconds of idle before a field edit is saved
DEFAULT_PAGE_SIZE = 20
PAGE_SIZE_OPTIONS = (5, 10, 20, 50, 100)
