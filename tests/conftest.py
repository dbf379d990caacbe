# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session

from taskpulse.db.config import build_engine, get_session, get_session_factory
from taskpulse.db.init import init_db
from taskpulse.models.user import User
from taskpulse.routers.auth import create_jwt_token
from taskpulse.services.comment_service import CommentFeed, CommentService
from taskpulse.services.task_store import TaskStore
from taskpulse.services.text_generation import get_text_generator

from .fakes import FakeTextGenerator


@pytest.fixture()
def engine(tmp_path: Path) -> Iterator[Engine]:
    """Fresh SQLite file per test; worker threads share it through the engine."""
    engine = build_engine(f"sqlite:///{tmp_path / 'taskpulse.sqlite3'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Callable[[], Session]:
    def factory() -> Session:
        return Session(engine)

    return factory


@pytest.fixture()
def store(session_factory) -> TaskStore:
    return TaskStore(session_factory, retry_delay=0)


@pytest.fixture()
def feed() -> CommentFeed:
    return CommentFeed()


@pytest.fixture()
def comment_service(session_factory, feed: CommentFeed) -> CommentService:
    return CommentService(session_factory, feed=feed)


@pytest.fixture()
def generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture()
def app(session_factory, generator: FakeTextGenerator):
    """The FastAPI app wired to the per-test database and a fake generator."""
    from taskpulse.main import app

    def override_session() -> Iterator[Session]:
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_text_generator] = lambda: generator
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def auth_headers() -> Callable[..., Dict[str, str]]:
    """Bearer headers for a user id, signed with the service secret."""

    def make(user_id: str = "U1") -> Dict[str, str]:
        user = User(id=user_id, email=f"{user_id.lower()}@example.com", display_name=f"User {user_id}")
        return {"Authorization": f"Bearer {create_jwt_token(user)}"}

    return make
