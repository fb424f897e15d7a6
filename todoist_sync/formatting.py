"""Response formatting helpers for Todoist Sync.

Renders a task forest as a nested Markdown checklist, the form a
```todoist block takes inside a note. JSON output is available for
machine consumers.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from todoist_sync.models import Due, Project, Section, TaskNode
from todoist_sync.tree import iter_nodes

CHARACTER_LIMIT = 25_000
INDENT = "  "

# ---------------------------------------------------------------------------
# Priority display
# ---------------------------------------------------------------------------

PRIORITY_LABELS = {
    1: "",
    2: "!",
    3: "!!",
    4: "!!!",
}


def priority_label(value: int) -> str:
    """Convert priority int to its exclamation marks (none for normal)."""
    return PRIORITY_LABELS.get(value, "")


# ---------------------------------------------------------------------------
# Due dates
# ---------------------------------------------------------------------------

def _parse_datetime(value: str) -> datetime | None:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Timestamps with an offset are shown in local time
    return dt.astimezone() if dt.tzinfo else dt


def format_due(due: Due | None) -> str:
    """Format as '02/18/26', or '02/18/26 @ 4:00 PM' when a time is present."""
    if due is None:
        return ""
    date_time_raw = due.datetime or (due.date if "T" in due.date else None)
    if date_time_raw:
        dt = _parse_datetime(date_time_raw)
        if dt is not None:
            hour = dt.hour % 12 or 12
            ampm = "PM" if dt.hour >= 12 else "AM"
            return f"{dt:%m/%d/%y} @ {hour}:{dt.minute:02d} {ampm}"
    if due.date and "T" not in due.date:
        parts = due.date.split("-")
        if len(parts) == 3 and all(parts):
            y, m, d = parts
            return f"{m}/{d}/{y[-2:] if len(y) >= 4 else y}"
        return due.date
    return due.string or ""


# ---------------------------------------------------------------------------
# Markdown formatters
# ---------------------------------------------------------------------------

_MD_SPECIAL = re.compile(r"([\\`*_\[\]<>#|~])")


def escape_markdown(text: str) -> str:
    """Backslash-escape characters Markdown would otherwise interpret."""
    return _MD_SPECIAL.sub(r"\\\1", text)


def format_task_line(node: TaskNode, depth: int) -> str:
    task = node.task
    check = "x" if task.is_completed else " "
    parts = [f"{INDENT * depth}- [{check}] {escape_markdown(task.content)}"]
    due = format_due(task.due)
    if due:
        parts.append(f"`{due}`")
    marks = priority_label(task.priority)
    if marks:
        parts.append(marks)
    return " ".join(parts)


def format_forest_md(forest: list[TaskNode], show_completed: bool = False) -> str:
    """Render the forest as a nested checklist.

    A hidden (completed) task hides its whole subtree.
    """
    lines = []
    hidden_below: int | None = None
    for node, depth in iter_nodes(forest):
        if hidden_below is not None:
            if depth > hidden_below:
                continue
            hidden_below = None
        if node.task.is_completed and not show_completed:
            hidden_below = depth
            continue
        lines.append(format_task_line(node, depth))
    if not lines:
        return "No tasks found."
    return "\n".join(lines)


def format_projects_md(projects: list[Project]) -> str:
    """Format projects as a Markdown list, nested by parent."""
    if not projects:
        return "No projects found."
    known = {p.id for p in projects}
    children: dict[str | None, list[Project]] = {}
    for p in projects:
        parent = p.parent_id if p.parent_id in known else None
        children.setdefault(parent, []).append(p)

    lines = [f"# Projects ({len(projects)})"]

    def walk(parent: str | None, depth: int) -> None:
        for p in sorted(children.get(parent, []), key=lambda x: x.order):
            flags = []
            if p.is_inbox_project:
                flags.append("inbox")
            if p.is_favorite:
                flags.append("favorite")
            if p.is_shared:
                flags.append("shared")
            suffix = f" ({', '.join(flags)})" if flags else ""
            lines.append(f"{INDENT * depth}- **{escape_markdown(p.name)}** `{p.id}`{suffix}")
            walk(p.id, depth + 1)

    walk(None, 0)
    return "\n".join(lines)


def format_sections_md(sections: list[Section]) -> str:
    if not sections:
        return "No sections found."
    lines = [f"# Sections ({len(sections)})"]
    for s in sections:
        lines.append(f"- **{escape_markdown(s.name)}** `{s.id}` (project `{s.project_id}`)")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

def format_json(data: Any) -> str:
    """Format data (models included) as indented JSON string."""
    if isinstance(data, list):
        data = [d.model_dump() if hasattr(d, "model_dump") else d for d in data]
    elif hasattr(data, "model_dump"):
        data = data.model_dump()
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Truncation
# ---------------------------------------------------------------------------

def truncate_response(response: str) -> str:
    """Truncate response if it exceeds CHARACTER_LIMIT."""
    if len(response) <= CHARACTER_LIMIT:
        return response
    truncated = response[:CHARACTER_LIMIT]
    return (
        truncated
        + "\n\n---\n"
        + f"**Response truncated** ({len(response):,} chars -> {CHARACTER_LIMIT:,} chars). "
        + "Narrow the block to a project, section or filter."
    )
