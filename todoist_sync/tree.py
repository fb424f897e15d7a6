"""Build a nested task forest from the flat task list.

A task whose parent is not in the list (filtered out, or in another
project) is shown as a top-level item instead of being dropped.
"""

from __future__ import annotations

from typing import Iterator

from todoist_sync.models import Task, TaskNode


def _order_key(node: TaskNode) -> int:
    return node.task.order


def _in_cycle(task: Task, by_id: dict[str, Task]) -> bool:
    """True if following parent_id from ``task`` leads back to it."""
    seen = {task.id}
    parent_id = task.parent_id
    while parent_id is not None and parent_id in by_id:
        if parent_id in seen:
            return parent_id == task.id
        seen.add(parent_id)
        parent_id = by_id[parent_id].parent_id
    return False


def _sort_children(node: TaskNode) -> None:
    # Explicit stack: nesting depth is unbounded
    stack = [node]
    while stack:
        current = stack.pop()
        current.children.sort(key=_order_key)
        stack.extend(current.children)


def build_forest(tasks: list[Task]) -> list[TaskNode]:
    """Return root nodes, with roots and every level of children sorted by order."""
    by_id = {t.id: t for t in tasks}
    nodes = {t.id: TaskNode(task=t) for t in tasks}

    roots: list[TaskNode] = []
    for t in tasks:
        node = nodes[t.id]
        parent_id = t.parent_id
        if parent_id is None or parent_id not in nodes or _in_cycle(t, by_id):
            roots.append(node)
        else:
            nodes[parent_id].children.append(node)

    roots.sort(key=_order_key)
    for root in roots:
        _sort_children(root)
    return roots


def iter_nodes(forest: list[TaskNode]) -> Iterator[tuple[TaskNode, int]]:
    """Walk the forest depth-first, yielding ``(node, depth)`` in display order."""
    stack = [(node, 0) for node in reversed(forest)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        stack.extend((child, depth + 1) for child in reversed(node.children))
