# tests/test_app_state.py

from __future__ import annotations

import asyncio

import httpx
import pytest

from taskpulse.errors import AuthenticationError
from taskpulse.services.task_store import TaskStore
from taskpulse.state.app import AppState
from taskpulse.state.identity import HttpIdentityProvider
from taskpulse.state.suggestions import SuggestionClient
from taskpulse.state.tasks import TaskState

EMAIL = "ada@example.com"
PASSWORD = "correct-horse"


async def _signed_up(http: httpx.AsyncClient) -> str:
    response = await http.post("/auth/sign-up", json={"email": EMAIL, "password": PASSWORD, "displayName": "Ada"})
    assert response.status_code == 201
    return response.json()["userId"]


@pytest.mark.asyncio
async def test_sign_in_loads_tasks_and_sign_out_clears(app, store: TaskStore) -> None:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://taskpulse.test") as http:
        uid = await _signed_up(http)
        await store.create(uid, {"title": "Write report"})

        identity = HttpIdentityProvider(http)
        state = AppState(identity, store)
        assert state.session.state.loading is True

        await state.start()
        assert state.session.state.loading is False
        assert not state.session.state.is_authenticated

        await state.session.sign_in(EMAIL, PASSWORD)

        assert state.session.state.user.uid == uid
        assert state.session.state.user.display_name == "Ada"
        assert identity.token
        assert [t.title for t in state.tasks.state.tasks] == ["Write report"]

        await state.session.sign_out()

        assert state.session.state.user is None
        assert state.tasks.state == TaskState()
        assert identity.token is None

        state.close()
        await identity.sign_in(EMAIL, PASSWORD)
        assert state.session.state.user is None  # no longer subscribed


@pytest.mark.asyncio
async def test_failed_sign_in_is_recorded_and_raised(app, store: TaskStore) -> None:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://taskpulse.test") as http:
        await _signed_up(http)
        state = AppState(HttpIdentityProvider(http), store)
        await state.start()

        with pytest.raises(AuthenticationError):
            await state.session.sign_in(EMAIL, "wrong-password")

        assert state.session.state.error == "Invalid email or password"
        assert state.session.state.loading is False
        assert state.tasks.state.tasks == ()


@pytest.mark.asyncio
async def test_suggestion_round_trip_through_service(app, store: TaskStore, generator) -> None:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://taskpulse.test") as http:
        uid = await _signed_up(http)
        identity = HttpIdentityProvider(http)
        await identity.sign_in(EMAIL, PASSWORD)
        task = await store.get(await store.create(uid, {"title": "Write report", "dueDate": "2026-01-01"}))

        outcome = await SuggestionClient(http, lambda: identity.token).request(task, uid)

        assert outcome.kind == "success"
        assert outcome.suggestion == generator.text
        assert outcome.remaining_count == 19
        prompt, _ = generator.calls[0]
        assert 'Task: "Write report"' in prompt


@pytest.mark.asyncio
async def test_sign_out_during_task_load_keeps_tasks_cleared(app, store: TaskStore, monkeypatch) -> None:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://taskpulse.test") as http:
        uid = await _signed_up(http)
        await store.create(uid, {"title": "Private plan"})

        started = asyncio.Event()
        gate = asyncio.Event()
        real_list = store.list_by_user

        async def slow_list(user_id):
            started.set()
            await gate.wait()
            return await real_list(user_id)

        monkeypatch.setattr(store, "list_by_user", slow_list)

        state = AppState(HttpIdentityProvider(http), store)
        await state.start()
        started.clear()

        signing_in = asyncio.create_task(state.session.sign_in(EMAIL, PASSWORD))
        await asyncio.wait_for(started.wait(), timeout=5)

        await state.session.sign_out()
        gate.set()
        await signing_in

        assert state.session.state.user is None
        assert state.tasks.state == TaskState()
