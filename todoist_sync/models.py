"""Pydantic models for Todoist Sync.

Record models (Task, Project, Section) hold data already normalized by
the mapper. Input models validate tool arguments before they reach the API.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"


class TaskPriority(int, Enum):
    """Todoist priority levels. 1 is normal (no indicator), 4 is urgent."""
    NORMAL = 1
    MEDIUM = 2
    HIGH = 3
    URGENT = 4


# ---------------------------------------------------------------------------
# Shared model config
# ---------------------------------------------------------------------------

_STRICT_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    validate_assignment=True,
    extra="forbid",
)

_RECORD_CONFIG = ConfigDict(frozen=True, coerce_numbers_to_str=True)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class Due(BaseModel):
    """Due information as Todoist reports it."""
    model_config = _RECORD_CONFIG

    date: str = ""
    datetime: Optional[str] = None
    string: Optional[str] = None


class Task(BaseModel):
    """Canonical task shape produced by the mapper."""
    model_config = _RECORD_CONFIG

    id: str
    content: str
    description: str = ""
    is_completed: bool = False
    order: int = 0
    priority: int = Field(default=1, ge=1, le=4)
    project_id: str
    section_id: Optional[str] = None
    parent_id: Optional[str] = None
    due: Optional[Due] = None
    labels: list[str] = Field(default_factory=list)
    created_at: str = ""
    assignee_id: Optional[str] = None
    url: str = ""


class TaskNode(BaseModel):
    """A task plus its ordered subtasks."""

    task: Task
    children: list[TaskNode] = Field(default_factory=list)


class Project(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    name: str
    order: int = 0
    color: str = "grey"
    is_shared: bool = False
    is_favorite: bool = False
    is_inbox_project: bool = False
    parent_id: Optional[str] = None
    url: str = ""


class Section(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    name: str
    order: int = 0
    project_id: str


class Query(BaseModel):
    """Parsed body of a ```todoist block. At most one field is set."""
    model_config = _RECORD_CONFIG

    project_id: Optional[str] = None
    section_id: Optional[str] = None
    filter: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.project_id is None and self.section_id is None and self.filter is None


class Selection(BaseModel):
    """Fetch parameters for one view, after defaults are applied."""
    model_config = _RECORD_CONFIG

    project_id: Optional[str] = None
    section_id: Optional[str] = None
    filter: Optional[str] = None
    include_completed: bool = False


# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------

class RenderBlockInput(BaseModel):
    """Input for rendering a ```todoist block."""
    model_config = _STRICT_CONFIG

    source: str = Field(
        default="",
        description=(
            "Block body: 'project:123', 'section:456', 'filter:today | overdue', "
            "a bare project id, a bare filter, or empty for the configured default"
        ),
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' (checklist) or 'json' (task forest)",
    )


class ToggleTaskInput(BaseModel):
    """Input for completing or reopening a task from a rendered block."""
    model_config = _STRICT_CONFIG

    source: str = Field(default="", description="Body of the block the task was toggled in")
    task_id: str = Field(..., description="Todoist task ID", min_length=1)
    completed: bool = Field(..., description="New completion state: true closes, false reopens")


class CloseBlockInput(BaseModel):
    """Input for unregistering a block that is no longer shown."""
    model_config = _STRICT_CONFIG

    source: str = Field(default="", description="Body of the block that was closed")


class ListProjectsInput(BaseModel):
    """Input for listing all projects."""
    model_config = _STRICT_CONFIG

    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' or 'json'",
    )


class ListSectionsInput(BaseModel):
    """Input for listing sections, optionally for one project."""
    model_config = _STRICT_CONFIG

    project_id: Optional[str] = Field(
        default=None,
        description="Only return sections of this project (sorted by order)",
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' or 'json'",
    )


class CreateTaskInput(BaseModel):
    """Input for creating a new task."""
    model_config = _STRICT_CONFIG

    content: str = Field(
        ...,
        description="Task title (e.g., 'Buy groceries')",
        min_length=1,
        max_length=500,
    )
    project_id: str = Field(..., description="Project ID to create the task in", min_length=1)
    description: Optional[str] = Field(
        default=None,
        description="Task notes (supports markdown)",
        max_length=16_000,
    )
    section_id: Optional[str] = Field(default=None, description="Section ID within the project")
    parent_id: Optional[str] = Field(default=None, description="Parent task ID to create a subtask")
    priority: TaskPriority = Field(
        default=TaskPriority.NORMAL,
        description="Priority: 1=normal, 2=medium, 3=high, 4=urgent",
    )
    due_date: Optional[str] = Field(
        default=None,
        description="Due date as 'YYYY-MM-DD' (e.g., '2026-03-15')",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
    )
    due_string: Optional[str] = Field(
        default=None,
        description="Natural language due date (e.g., 'tomorrow at 5pm'); wins over due_date",
    )

    @field_validator("section_id", "parent_id", "due_string")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        return v or None


class RefreshViewsInput(BaseModel):
    """Input for refreshing every registered block."""
    model_config = _STRICT_CONFIG


TaskNode.model_rebuild()
