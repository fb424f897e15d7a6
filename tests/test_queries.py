from datetime import date, timedelta

import pytest

from todoist_sync.models import Due, Task

TODAY = date(2026, 3, 10)


def _make_task(task_id, due_date=None, due_datetime=None, order=0, **kwargs):
    """Helper to build a Task with an optional due."""
    due = None
    if due_date is not None or due_datetime is not None:
        due = Due(date=due_date or "", datetime=due_datetime)
    return Task(id=task_id, content=f"Task {task_id}", project_id="p1", order=order, due=due, **kwargs)


def _ids(tasks):
    return [t.id for t in tasks]


@pytest.fixture()
def tasks():
    return [
        _make_task("yesterday", due_date="2026-03-09"),
        _make_task("today", due_date="2026-03-10"),
        _make_task("today-timed", due_datetime="2026-03-10T23:30:00Z"),
        _make_task("tomorrow", due_date="2026-03-11"),
        _make_task("next-week", due_date="2026-03-17"),
        _make_task("no-due"),
        _make_task("bad-date", due_date="soon"),
    ]


def test_parse_due_date_prefers_datetime():
    from todoist_sync.queries import parse_due_date
    task = _make_task("1", due_date="2026-01-01", due_datetime="2026-02-02T09:00:00")
    assert parse_due_date(task) == date(2026, 2, 2)


def test_parse_due_date_date_with_time_component():
    from todoist_sync.queries import parse_due_date
    assert parse_due_date(_make_task("1", due_date="2026-03-10T08:00:00")) == date(2026, 3, 10)


def test_parse_due_date_keeps_utc_calendar_day():
    from todoist_sync.queries import parse_due_date
    late = _make_task("1", due_datetime="2026-03-10T23:30:00Z")
    early = _make_task("2", due_datetime="2026-03-11T00:15:00+05:00")
    assert parse_due_date(late) == date(2026, 3, 10)
    assert parse_due_date(early) == date(2026, 3, 11)


def test_parse_due_date_unresolvable():
    from todoist_sync.queries import parse_due_date
    assert parse_due_date(_make_task("1")) is None
    assert parse_due_date(_make_task("2", due_date="")) is None
    assert parse_due_date(_make_task("3", due_date="2026-3-1")) is None
    assert parse_due_date(_make_task("4", due_date="2026-02-30")) is None
    assert parse_due_date(_make_task("5", due_date="next monday")) is None


def test_filter_today(tasks):
    from todoist_sync.queries import apply_filter
    assert _ids(apply_filter(tasks, "today", today=TODAY)) == ["today", "today-timed"]


def test_filter_is_case_and_space_insensitive(tasks):
    from todoist_sync.queries import apply_filter
    assert _ids(apply_filter(tasks, "  ToDay ", today=TODAY)) == ["today", "today-timed"]


def test_filter_overdue(tasks):
    from todoist_sync.queries import apply_filter
    assert _ids(apply_filter(tasks, "overdue", today=TODAY)) == ["yesterday"]


def test_filter_tomorrow(tasks):
    from todoist_sync.queries import apply_filter
    assert _ids(apply_filter(tasks, "tomorrow", today=TODAY)) == ["tomorrow"]


def test_filter_or_is_union(tasks):
    from todoist_sync.queries import apply_filter
    result = apply_filter(tasks, "today | overdue", today=TODAY)
    assert _ids(result) == ["yesterday", "today", "today-timed"]


def test_filter_or_ignores_unknown_parts(tasks):
    from todoist_sync.queries import apply_filter
    assert _ids(apply_filter(tasks, "#Work | tomorrow", today=TODAY)) == ["tomorrow"]


def test_filter_and_requires_all(tasks):
    from todoist_sync.queries import apply_filter
    assert apply_filter(tasks, "today & overdue", today=TODAY) == []
    assert _ids(apply_filter(tasks, "today & today", today=TODAY)) == ["today", "today-timed"]


def test_filter_pipe_checked_before_ampersand(tasks):
    from todoist_sync.queries import apply_filter
    # "today & tomorrow" is one OR branch, which matches nothing
    result = apply_filter(tasks, "overdue | today & tomorrow", today=TODAY)
    assert _ids(result) == ["yesterday"]


def test_unknown_filter_returns_input(tasks):
    from todoist_sync.queries import apply_filter
    result = apply_filter(tasks, "#Work", today=TODAY)
    assert result == tasks
    assert result is not tasks


def test_filter_does_not_mutate_input(tasks):
    from todoist_sync.queries import apply_filter
    before = list(tasks)
    apply_filter(tasks, "today", today=TODAY)
    assert tasks == before


def test_filter_defaults_to_local_today():
    from todoist_sync.queries import apply_filter
    today = date.today()
    tasks = [
        _make_task("a", due_date=today.isoformat()),
        _make_task("b", due_date=(today + timedelta(days=1)).isoformat()),
    ]
    assert _ids(apply_filter(tasks, "today")) == ["a"]
    assert _ids(apply_filter(tasks, "tomorrow")) == ["b"]


def test_filter_by_scope():
    from todoist_sync.queries import filter_by_scope
    tasks = [
        _make_task("1", section_id="s1"),
        _make_task("2", section_id="s2"),
        _make_task("3", section_id="s1", is_completed=True),
        Task(id="4", content="other", project_id="p2"),
    ]
    assert _ids(filter_by_scope(tasks)) == ["1", "2", "4"]
    assert _ids(filter_by_scope(tasks, project_id="p1")) == ["1", "2"]
    assert _ids(filter_by_scope(tasks, section_id="s1")) == ["1"]
    assert _ids(filter_by_scope(tasks, section_id="s1", include_completed=True)) == ["1", "3"]


def test_sort_by_order_is_stable():
    from todoist_sync.queries import sort_by_order
    tasks = [_make_task("a", order=2), _make_task("b", order=1), _make_task("c", order=1)]
    assert _ids(sort_by_order(tasks)) == ["b", "c", "a"]
