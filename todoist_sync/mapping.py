"""Map raw Sync API records onto the canonical models.

The Sync API has renamed several fields over time, so each logical
attribute lists every raw field it may come from, in order of preference.
These functions are pure; a record without id, content or project_id is
rejected by pydantic.
"""

from __future__ import annotations

from typing import Any, Mapping

from todoist_sync.models import Due, Project, Section, Task

TASK_URL = "https://app.todoist.com/showTask?id="
PROJECT_URL = "https://app.todoist.com/showProject?id="


def _first(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first of ``keys`` whose value is not None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def map_due(raw_due: Mapping[str, Any] | None) -> Due | None:
    if raw_due is None:
        return None
    return Due(
        date=raw_due.get("date") or "",
        datetime=raw_due.get("datetime"),
        string=raw_due.get("string"),
    )


def map_to_task(raw: Mapping[str, Any]) -> Task:
    """Normalize one Sync API item into a Task."""
    task_id = raw.get("id")
    return Task(
        id=task_id,
        content=raw.get("content"),
        description=raw.get("description") or "",
        # "checked" is the legacy Sync name for "completed"
        is_completed=raw.get("completed") is True or raw.get("checked") is True,
        order=_first(raw, "item_order", "child_order", default=0),
        priority=_first(raw, "priority", default=1),
        project_id=raw.get("project_id"),
        section_id=raw.get("section_id") or None,
        parent_id=raw.get("parent_id") or None,
        due=map_due(raw.get("due")),
        labels=list(raw.get("labels") or []),
        created_at=raw.get("date_added") or "",
        assignee_id=_first(raw, "assignee_id", "responsible_uid"),
        url=f"{TASK_URL}{task_id}",
    )


def map_tasks(raw_items: list[Mapping[str, Any]]) -> list[Task]:
    return [map_to_task(item) for item in raw_items]


def map_to_project(raw: Mapping[str, Any]) -> Project:
    project_id = raw.get("id")
    return Project(
        id=project_id,
        name=raw.get("name"),
        order=_first(raw, "order", "child_order", default=0),
        color=raw.get("color") or "grey",
        is_shared=bool(raw.get("is_shared", False)),
        is_favorite=bool(raw.get("is_favorite", False)),
        is_inbox_project=bool(raw.get("is_inbox_project", False)),
        parent_id=raw.get("parent_id") or None,
        url=f"{PROJECT_URL}{project_id}",
    )


def map_to_section(raw: Mapping[str, Any]) -> Section:
    return Section(
        id=raw.get("id"),
        name=raw.get("name"),
        order=_first(raw, "order", "section_order", default=0),
        project_id=raw.get("project_id"),
    )
