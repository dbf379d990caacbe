"""Database configuration for Taskpulse."""
import logging
from typing import Callable, Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from taskpulse.config import DATABASE_URL

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def build_engine(database_url: str) -> Engine:
    """
    Create a SQLModel engine for the given URL.

    SQLite connections are shared with worker threads, so same-thread checks
    are disabled and foreign keys plus WAL journaling are switched on.
    """
    if database_url.startswith("postgresql"):
        logger.info("[DB CONFIG] Using PostgreSQL database")
        return create_engine(database_url, echo=False, pool_pre_ping=True)

    logger.info(f"[DB CONFIG] Using SQLite database: {database_url}")
    engine = create_engine(database_url, echo=False, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


engine = build_engine(DATABASE_URL)


def session_factory() -> Session:
    """Open a new session on the application engine."""
    return Session(engine)


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session


def get_session_factory() -> SessionFactory:
    """Dependency for services that open one session per operation."""
    return session_factory
