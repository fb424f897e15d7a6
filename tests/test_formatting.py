import json

from todoist_sync.formatting import (
    CHARACTER_LIMIT,
    escape_markdown,
    format_due,
    format_forest_md,
    format_json,
    format_projects_md,
    priority_label,
    truncate_response,
)
from todoist_sync.models import Due, Project, Task
from todoist_sync.tree import build_forest


def _task(task_id, order=0, parent_id=None, **kwargs):
    return Task(
        id=task_id,
        content=kwargs.pop("content", f"Task {task_id}"),
        project_id="p1",
        order=order,
        parent_id=parent_id,
        **kwargs,
    )


def test_format_due_date_only():
    assert format_due(Due(date="2025-02-18")) == "02/18/25"


def test_format_due_with_time():
    assert format_due(Due(datetime="2025-02-18T16:05:00")) == "02/18/25 @ 4:05 PM"
    assert format_due(Due(date="2025-02-18T00:30:00")) == "02/18/25 @ 12:30 AM"


def test_format_due_falls_back_to_string():
    assert format_due(Due(string="every day")) == "every day"
    assert format_due(None) == ""


def test_priority_label():
    assert priority_label(1) == ""
    assert priority_label(4) == "!!!"


def test_escape_markdown():
    assert escape_markdown("a *b* [c]") == r"a \*b\* \[c\]"


def test_forest_md_nested_checklist():
    forest = build_forest([
        _task("1", 0, content="Parent", priority=4, due=Due(date="2025-02-18")),
        _task("2", 0, "1", content="Child"),
    ])
    assert format_forest_md(forest) == "- [ ] Parent `02/18/25` !!!\n  - [ ] Child"


def test_forest_md_hides_completed_subtree():
    forest = build_forest([
        _task("1", 0, content="Done", is_completed=True),
        _task("2", 0, "1", content="Under done"),
        _task("3", 1, content="Open"),
    ])
    assert format_forest_md(forest) == "- [ ] Open"
    shown = format_forest_md(forest, show_completed=True)
    assert shown == "- [x] Done\n  - [ ] Under done\n- [ ] Open"


def test_forest_md_empty():
    assert format_forest_md([]) == "No tasks found."


def test_projects_md_nests_children():
    projects = [
        Project(id="p2", name="Sub", parent_id="p1", order=0),
        Project(id="p1", name="Work", order=1, is_favorite=True),
        Project(id="p0", name="Inbox", order=0, is_inbox_project=True),
    ]
    assert format_projects_md(projects).splitlines() == [
        "# Projects (3)",
        "- **Inbox** `p0` (inbox)",
        "- **Work** `p1` (favorite)",
        "  - **Sub** `p2`",
    ]


def test_format_json_dumps_models():
    data = json.loads(format_json([_task("1")]))
    assert data[0]["id"] == "1"
    assert data[0]["due"] is None


def test_truncate_response():
    assert truncate_response("short") == "short"
    long = "x" * (CHARACTER_LIMIT + 10)
    assert "Response truncated" in truncate_response(long)
