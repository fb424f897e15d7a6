"""Client-side task filtering.

The Sync API returns every item, so project/section scoping and the
date filters Todoist would normally evaluate server-side happen here.
These are pure functions (no I/O) for easy testing.

Only the date keywords are understood: ``today``, ``overdue`` and
``tomorrow``, optionally joined with ``|`` (any) or ``&`` (all). Anything
else, such as ``#ProjectName``, leaves the task list unchanged because
project names are not known at this layer.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Callable

from todoist_sync.models import Task

_DAY_FORMAT = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DayPredicate = Callable[[date, date], bool]


def parse_due_date(task: Task) -> date | None:
    """Resolve a task's due day. Returns None if absent or unparseable.

    The day is the literal YYYY-MM-DD prefix. Timestamps are not converted
    to local time, so "2026-03-10T23:30:00Z" is always March 10 here even
    where format_due shows it on another day.
    """
    if task.due is None:
        return None
    date_str = task.due.datetime or task.due.date
    if not date_str:
        return None
    # Keep the calendar day, drop any time of day
    day_str = date_str.split("T", 1)[0] if "T" in date_str else date_str
    if not _DAY_FORMAT.match(day_str):
        return None
    try:
        return date.fromisoformat(day_str)
    except ValueError:
        return None


def is_today(due: date, today: date) -> bool:
    return due == today


def is_overdue(due: date, today: date) -> bool:
    return due < today


def is_tomorrow(due: date, today: date) -> bool:
    return due == today + timedelta(days=1)


PREDICATES: dict[str, DayPredicate] = {
    "today": is_today,
    "overdue": is_overdue,
    "tomorrow": is_tomorrow,
}


def _matches(part: str, due: date, today: date) -> bool:
    predicate = PREDICATES.get(part)
    return predicate is not None and predicate(due, today)


def _filter_by_due(tasks: list[Task], keep: Callable[[date], bool]) -> list[Task]:
    result = []
    for t in tasks:
        due = parse_due_date(t)
        if due is not None and keep(due):
            result.append(t)
    return result


def apply_filter(tasks: list[Task], expression: str, *, today: date | None = None) -> list[Task]:
    """Apply a Todoist-style date filter to tasks.

    ``|`` is checked before ``&``, so an expression containing both is
    split on ``|`` only and the ``&`` parts never match.
    """
    today = today or date.today()
    expr = expression.strip().lower()

    if expr in PREDICATES:
        predicate = PREDICATES[expr]
        return _filter_by_due(tasks, lambda due: predicate(due, today))

    if "|" in expr:
        parts = [p.strip() for p in expr.split("|")]
        return _filter_by_due(
            tasks, lambda due: any(_matches(p, due, today) for p in parts)
        )

    if "&" in expr:
        parts = [p.strip() for p in expr.split("&")]
        return _filter_by_due(
            tasks, lambda due: all(_matches(p, due, today) for p in parts)
        )

    return list(tasks)


def filter_by_scope(
    tasks: list[Task],
    *,
    project_id: str | None = None,
    section_id: str | None = None,
    include_completed: bool = False,
) -> list[Task]:
    """Keep tasks in the given project/section, dropping completed ones unless asked."""
    result = []
    for t in tasks:
        if project_id and t.project_id != project_id:
            continue
        if section_id and t.section_id != section_id:
            continue
        if not include_completed and t.is_completed:
            continue
        result.append(t)
    return result


def sort_by_order(tasks: list[Task]) -> list[Task]:
    """Sort by ``order`` ascending; ties keep their input order."""
    return sorted(tasks, key=lambda t: t.order)
