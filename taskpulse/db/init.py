"""Initialize database tables."""
import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

# Imported for their side effect of registering tables on SQLModel.metadata
from taskpulse.models.comment import Comment  # noqa: F401
from taskpulse.models.suggestion import Suggestion  # noqa: F401
from taskpulse.models.task import Task  # noqa: F401
from taskpulse.models.user import User  # noqa: F401
from taskpulse.models.user_stats import UserStats  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables in the database."""
    if bind is None:
        from taskpulse.db.config import engine as bind

    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(bind)
    logger.info("[DB INIT] Tables created successfully.")


if __name__ == "__main__":
    init_db()
