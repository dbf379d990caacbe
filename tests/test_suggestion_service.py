# tests/test_suggestion_service.py

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from taskpulse.errors import GenerationError, GenerationUnavailableError, QuotaExceededError, ValidationError
from taskpulse.models.suggestion import Suggestion
from taskpulse.models.user_stats import UserStats
from taskpulse.schemas.suggestion import SuggestionRequest
from taskpulse.services import suggestion_service, text_generation
from taskpulse.services.prompt_builder import SYSTEM_PROMPT
from taskpulse.services.suggestion_service import SuggestionService
from taskpulse.services.text_generation import CohereTextGenerator

from .fakes import FakeTextGenerator


def _seed_count(session_factory, user_id: str, count: int) -> None:
    with session_factory() as session:
        session.add(UserStats(user_id=user_id, suggestion_count=count))
        session.commit()


def _request(**overrides) -> SuggestionRequest:
    fields = {"user_id": "U1", "task_name": "Write report", "task_type": "task", "urgency_level": "normal"}
    fields.update(overrides)
    return SuggestionRequest(**fields)


@pytest.mark.asyncio
async def test_first_suggestion_creates_stats(session_factory, generator: FakeTextGenerator) -> None:
    service = SuggestionService(session_factory, generator)

    result = await service.suggest(_request())

    assert result.suggestion == generator.text
    assert result.is_from_cache is False
    assert result.remaining_count == 19
    assert service.get_count("U1") == 1
    assert generator.calls[0][1] == SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_nineteenth_use_reaches_the_limit(session_factory, generator: FakeTextGenerator) -> None:
    _seed_count(session_factory, "U1", 19)
    service = SuggestionService(session_factory, generator)

    result = await service.suggest(_request())

    assert result.remaining_count == 0
    assert service.get_count("U1") == 20
    with session_factory() as session:
        rows = session.exec(select(Suggestion)).all()
    assert len(rows) == 1
    assert rows[0].task_name_lower == "write report"
    assert rows[0].created_by == "U1"


@pytest.mark.asyncio
async def test_limit_reached_skips_generation(session_factory, generator: FakeTextGenerator) -> None:
    _seed_count(session_factory, "U1", 20)
    service = SuggestionService(session_factory, generator)

    with pytest.raises(QuotaExceededError) as exc_info:
        await service.suggest(_request())

    assert exc_info.value.count == 20
    assert exc_info.value.limit == 20
    assert generator.calls == []
    assert service.get_count("U1") == 20


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["user_id", "task_name"])
async def test_owner_and_task_name_required(session_factory, generator, missing: str) -> None:
    service = SuggestionService(session_factory, generator)

    with pytest.raises(ValidationError) as exc_info:
        await service.suggest(_request(**{missing: None}))

    assert exc_info.value.message == "User ID and task name are required"
    assert generator.calls == []


@pytest.mark.asyncio
async def test_empty_generation_fails_without_counting(session_factory) -> None:
    service = SuggestionService(session_factory, FakeTextGenerator(text=""))

    with pytest.raises(GenerationError) as exc_info:
        await service.suggest(_request())

    assert exc_info.value.message == "Failed to generate suggestion"
    assert service.get_count("U1") == 0


@pytest.mark.asyncio
async def test_provider_failure_gives_the_slot_back(session_factory) -> None:
    _seed_count(session_factory, "U1", 19)
    service = SuggestionService(session_factory, FakeTextGenerator(error=GenerationUnavailableError("quota")))

    with pytest.raises(GenerationUnavailableError):
        await service.suggest(_request())

    assert service.get_count("U1") == 19


class _YieldingGenerator(FakeTextGenerator):
    """Hands control back to the loop mid-generation so requests interleave."""

    async def generate(self, prompt: str, system_prompt: str) -> str:
        await asyncio.sleep(0.01)
        return await super().generate(prompt, system_prompt)


@pytest.mark.asyncio
async def test_concurrent_requests_never_pass_the_limit(session_factory) -> None:
    _seed_count(session_factory, "U1", 19)
    generator = _YieldingGenerator()
    service = SuggestionService(session_factory, generator)

    results = await asyncio.gather(*(service.suggest(_request()) for _ in range(3)), return_exceptions=True)

    served = [r for r in results if not isinstance(r, Exception)]
    refused = [r for r in results if isinstance(r, QuotaExceededError)]
    assert len(served) == 1
    assert len(refused) == 2
    assert served[0].remaining_count == 0
    assert len(generator.calls) == 1
    assert service.get_count("U1") == 20


@pytest.mark.asyncio
async def test_concurrent_first_requests_are_all_counted(session_factory) -> None:
    service = SuggestionService(session_factory, _YieldingGenerator(), limit=5)

    results = await asyncio.gather(*(service.suggest(_request()) for _ in range(3)))

    assert sorted(r.remaining_count for r in results) == [2, 3, 4]
    assert service.get_count("U1") == 3


@pytest.mark.asyncio
async def test_analytics_write_failure_does_not_fail_request(session_factory, generator, monkeypatch) -> None:
    def broken_row(**fields):
        raise SQLAlchemyError("suggestions table unavailable")

    monkeypatch.setattr(suggestion_service, "Suggestion", broken_row)
    service = SuggestionService(session_factory, generator)

    result = await service.suggest(_request())

    assert result.remaining_count == 19
    assert service.get_count("U1") == 1


class _FakeCohere:
    def __init__(self, text: str = "", error: Exception = None):
        self.text = text
        self.error = error
        self.kwargs = None

    def chat(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class _ProviderError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"status {status_code}")
        self.status_code = status_code


@pytest.mark.asyncio
async def test_cohere_generator_sends_preamble_and_strips() -> None:
    client = _FakeCohere(text="  Keep going!  ")
    generator = CohereTextGenerator(api_key="key", model="command-r", client=client)

    assert await generator.generate("prompt", "system") == "Keep going!"
    assert client.kwargs["message"] == "prompt"
    assert client.kwargs["preamble"] == "system"
    assert client.kwargs["model"] == "command-r"


@pytest.mark.asyncio
async def test_cohere_quota_errors_are_unavailable() -> None:
    generator = CohereTextGenerator(api_key="key", client=_FakeCohere(error=_ProviderError(429)))

    with pytest.raises(GenerationUnavailableError):
        await generator.generate("prompt", "system")


@pytest.mark.asyncio
async def test_cohere_other_errors_are_generation_errors() -> None:
    generator = CohereTextGenerator(api_key="key", client=_FakeCohere(error=_ProviderError(500)))

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("prompt", "system")
    assert not isinstance(exc_info.value, GenerationUnavailableError)


@pytest.mark.asyncio
async def test_unconfigured_cohere_is_unavailable(monkeypatch) -> None:
    monkeypatch.setattr(text_generation, "COHERE_API_KEY", None)
    generator = CohereTextGenerator()

    assert not generator.enabled
    with pytest.raises(GenerationUnavailableError):
        await generator.generate("prompt", "system")
