# tests/test_view.py

from __future__ import annotations

import pytest

from taskpulse.errors import ValidationError
from taskpulse.schemas.task import TaskRead
from taskpulse.state.view import PageRequest, TaskFilters, TaskListView, project


def _tasks() -> tuple:
    statuses = ["pending", "in-progress", "completed"]
    types = ["task", "bug", "feature", "improvement"]
    return tuple(
        TaskRead(
            id=f"t{i}",
            user_id="U1",
            title=f"Task {i}",
            status=statuses[i % 3],
            type=types[i % 4],
        )
        for i in range(12)
    )


def test_project_is_pure() -> None:
    tasks = _tasks()
    filters = TaskFilters(status="pending")
    page = PageRequest(index=1, size=2)

    assert project(tasks, filters, page) == project(tasks, filters, page)


def test_filters_are_anded() -> None:
    result = project(_tasks(), TaskFilters(status="pending", type="task"), PageRequest(1, 20))

    assert [t.id for t in result.filtered] == ["t0"]
    assert all(t.status.value == "pending" and t.type.value == "task" for t in result.filtered)


def test_empty_filter_result_has_no_pages() -> None:
    result = project((), TaskFilters(), PageRequest(1, 5))
    assert result.total_pages == 0
    assert result.page_items == ()


@pytest.mark.parametrize("size", [1, 5, 7, 20])
def test_page_never_exceeds_size(size: int) -> None:
    tasks = _tasks()
    pages = project(tasks, TaskFilters(), PageRequest(1, size)).total_pages
    for index in range(1, pages + 1):
        result = project(tasks, TaskFilters(), PageRequest(index, size))
        assert len(result.page_items) <= size


def test_pagination_slices_filtered_tasks() -> None:
    result = project(_tasks(), TaskFilters(), PageRequest(index=3, size=5))

    assert result.total_pages == 3
    assert [t.id for t in result.page_items] == ["t10", "t11"]


def test_index_past_last_page_is_not_clamped() -> None:
    result = project(_tasks(), TaskFilters(), PageRequest(index=5, size=10))
    assert result.total_pages == 2
    assert result.page_items == ()


def test_invalid_inputs_are_rejected() -> None:
    with pytest.raises(ValidationError):
        TaskFilters(status="done")
    with pytest.raises(ValidationError):
        TaskFilters(type="epic")
    with pytest.raises(ValidationError):
        PageRequest(index=1, size=0)


def test_filter_change_resets_page() -> None:
    view = TaskListView(page_size=5)
    view.set_page(3)

    view.set_filter("status", "pending")

    assert view.page.index == 1
    assert view.filters.status == "pending"


def test_page_size_change_resets_page() -> None:
    view = TaskListView(page_size=5)
    view.set_page(2)

    view.set_page_size(10)

    assert view.page.index == 1
    assert view.page.size == 10
    with pytest.raises(ValidationError):
        view.set_page_size(7)


def test_select_memoizes_on_identity() -> None:
    view = TaskListView(page_size=5)
    tasks = _tasks()

    first = view.select(tasks)
    assert view.select(tasks) is first

    assert view.select(list(tasks)) is not first

    view.set_filter("type", "bug")
    assert [t.type.value for t in view.select(tasks).filtered] == ["bug"] * 3
