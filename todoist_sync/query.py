"""Parser for the body of a ```todoist block.

Supported directives (keywords are case-insensitive):
    project:123  or  project 123
    section:456  or  section 456
    filter:today  or  filter "today | overdue"
    123          (a bare numeric id is a project)
    anything else is taken verbatim as a filter, e.g. "#Work"

An empty body means "use the configured default".
"""

from __future__ import annotations

import re

from todoist_sync.models import Query, Selection

_FILTER_COLON = re.compile(r"^\s*filter\s*:\s*[\"']?([^\"'\n]+)[\"']?$", re.IGNORECASE)
_FILTER_SPACE = re.compile(r"^\s*filter\s+([^\n]+)$", re.IGNORECASE)
_PROJECT = re.compile(r"^\s*project\s*(?::\s*|\s)(\S+)$", re.IGNORECASE)
_SECTION = re.compile(r"^\s*section\s*(?::\s*|\s)(\S+)$", re.IGNORECASE)
_DIGITS = re.compile(r"^\d+$")


def is_numeric_id(value: str) -> bool:
    return bool(_DIGITS.match(value))


def parse_query(text: str) -> Query:
    """Parse a block body into a Query. Never raises."""
    line = text.strip()
    if not line:
        return Query()

    match = _FILTER_COLON.match(line) or _FILTER_SPACE.match(line)
    if match:
        return Query(filter=match.group(1).strip())

    match = _PROJECT.match(line)
    if match:
        return Query(project_id=match.group(1))

    match = _SECTION.match(line)
    if match:
        return Query(section_id=match.group(1))

    if is_numeric_id(line):
        return Query(project_id=line)

    return Query(filter=line)


def resolve_selection(
    query: Query,
    default: str = "",
    include_completed: bool = False,
) -> Selection:
    """Turn a parsed query into fetch parameters.

    The default only applies to an empty query: a numeric default names a
    project, any other non-empty default is a filter.
    """
    if query.is_empty:
        default = (default or "").strip()
        if not default:
            return Selection(include_completed=include_completed)
        if is_numeric_id(default):
            return Selection(project_id=default, include_completed=include_completed)
        return Selection(filter=default, include_completed=include_completed)

    return Selection(
        project_id=query.project_id or None,
        section_id=query.section_id or None,
        filter=query.filter or None,
        include_completed=include_completed,
    )
