# tests/test_prompt_builder.py

from __future__ import annotations

from taskpulse.schemas.suggestion import SuggestionRequest
from taskpulse.services.prompt_builder import (
    DEFAULT_INSTRUCTION,
    TYPE_PROMPTS,
    URGENCY_INSTRUCTIONS,
    build_context,
    build_prompt,
    candidate_prompts,
)


def _request(**overrides) -> SuggestionRequest:
    fields = {"user_id": "U1", "task_name": "Write report", "task_status": "pending", "task_type": "task"}
    fields.update(overrides)
    return SuggestionRequest(**fields)


def test_context_describes_due_distance() -> None:
    assert "Overdue by 2 day(s)" in build_context(_request(days_until_due=-2))
    assert "Due TODAY" in build_context(_request(days_until_due=0))
    assert "Due in 3 day(s)" in build_context(_request(days_until_due=3))
    assert "Due" not in build_context(_request())


def test_context_defaults_type_and_status() -> None:
    context = build_context(SuggestionRequest(user_id="U1", task_name="Write report", task_description="Q3"))
    assert 'Task: "Write report"' in context
    assert 'Description: "Q3"' in context
    assert "Type: task" in context
    assert "Status: pending" in context


def test_urgent_templates_are_double_weighted() -> None:
    overdue = _request(urgency_level="overdue")
    normal = _request(urgency_level="normal")

    assert len(candidate_prompts(overdue, "ctx")) == 3 * 2 + 3 + 4
    assert len(candidate_prompts(normal, "ctx")) == 3 + 3 + 4
    assert len(candidate_prompts(_request(), "ctx")) == 3 + 4


def test_unknown_type_falls_back_to_task_family() -> None:
    pool = candidate_prompts(_request(task_type="chore", task_status="unknown"), "ctx")
    assert pool == [template.format(context="ctx") for template in TYPE_PROMPTS["task"]]


def test_index_mixes_random_draw_and_clock() -> None:
    request = _request(urgency_level="overdue")
    pool = candidate_prompts(request, build_context(request))

    # floor(0.25 * 13 * 100) + 1000 ms = 1325; 1325 % 13 == 12
    prompt = build_prompt(request, rng=lambda: 0.25, clock=lambda: 1.0)

    assert prompt == f"{pool[12]} {URGENCY_INSTRUCTIONS['overdue']}"


def test_default_instruction_without_urgency() -> None:
    prompt = build_prompt(_request(), rng=lambda: 0.0, clock=lambda: 0.0)
    assert prompt.endswith(DEFAULT_INSTRUCTION)
