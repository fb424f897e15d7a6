import pytest
from pydantic import ValidationError

from todoist_sync.mapping import map_to_project, map_to_section, map_to_task
from todoist_sync.tree import build_forest


def _raw(**overrides):
    item = {"id": "1", "content": "Task 1", "project_id": "p1"}
    item.update(overrides)
    return item


def test_minimal_item_defaults():
    task = map_to_task(_raw())
    assert task.id == "1"
    assert task.content == "Task 1"
    assert task.project_id == "p1"
    assert task.is_completed is False
    assert task.order == 0
    assert task.priority == 1
    assert task.due is None
    assert task.section_id is None
    assert task.parent_id is None
    assert task.assignee_id is None
    assert task.labels == []
    assert task.url == "https://app.todoist.com/showTask?id=1"


def test_completion_from_either_flag():
    assert map_to_task(_raw(completed=True)).is_completed is True
    assert map_to_task(_raw(checked=True)).is_completed is True
    assert map_to_task(_raw(completed=False, checked=False)).is_completed is False


def test_order_fallback_chain():
    assert map_to_task(_raw(item_order=5, child_order=9)).order == 5
    assert map_to_task(_raw(child_order=9)).order == 9
    assert map_to_task(_raw(item_order=None, child_order=None)).order == 0


def test_due_mapping():
    task = map_to_task(_raw(due={"datetime": "2025-02-18T16:00:00", "string": "Feb 18 4pm"}))
    assert task.due.date == ""
    assert task.due.datetime == "2025-02-18T16:00:00"
    assert task.due.string == "Feb 18 4pm"

    task = map_to_task(_raw(due={"date": "2025-02-18"}))
    assert task.due.date == "2025-02-18"
    assert task.due.datetime is None

    assert map_to_task(_raw(due=None)).due is None


def test_empty_due_object_is_kept():
    task = map_to_task(_raw(due={}))
    assert task.due is not None
    assert task.due.date == ""
    assert task.due.datetime is None


def test_null_ids_become_none_not_empty():
    task = map_to_task(_raw(section_id=None, parent_id=None))
    assert task.section_id is None
    assert task.parent_id is None

    task = map_to_task(_raw(section_id="s1", parent_id="7"))
    assert task.section_id == "s1"
    assert task.parent_id == "7"


def test_assignee_fallback():
    assert map_to_task(_raw(assignee_id="u1", responsible_uid="u2")).assignee_id == "u1"
    assert map_to_task(_raw(responsible_uid="u2")).assignee_id == "u2"


def test_mapping_does_not_mutate_raw():
    raw = _raw(labels=["home"], due={"date": "2025-01-01"})
    before = {k: v for k, v in raw.items()}
    map_to_task(raw)
    assert raw == before


def test_missing_required_field_raises():
    with pytest.raises(ValidationError):
        map_to_task({"id": "1", "content": "no project"})


def test_end_to_end_single_item():
    raw = [{"id": "1", "content": "T", "project_id": "p1", "completed": False, "item_order": 0}]
    roots = build_forest([map_to_task(r) for r in raw])
    assert len(roots) == 1
    assert roots[0].task.content == "T"
    assert roots[0].children == []


def test_map_project_defaults():
    project = map_to_project({"id": "p1", "name": "Inbox", "is_inbox_project": True})
    assert project.order == 0
    assert project.color == "grey"
    assert project.is_inbox_project is True
    assert project.is_shared is False
    assert project.parent_id is None
    assert "p1" in project.url


def test_map_section():
    section = map_to_section({"id": "s1", "name": "Section A", "order": 2, "project_id": "p1"})
    assert section.id == "s1"
    assert section.name == "Section A"
    assert section.order == 2
    assert section.project_id == "p1"
