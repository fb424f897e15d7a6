"""Todoist Sync MCP Server - Todoist tasks as live checklist blocks.

A ```todoist block in a note holds a short query (project, section, or
filter). The server renders the matching tasks as a nested Markdown
checklist, keeps registered blocks fresh on an interval, and turns
checkbox toggles back into Todoist completions.

Usage:
    python -m todoist_sync          # streamable-http transport (default)
    MCP_TRANSPORT=stdio python -m todoist_sync
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastmcp import FastMCP, Context

from todoist_sync.client import SyncCommandError, TodoistAPIError, TodoistClient
from todoist_sync.formatting import (
    format_json,
    format_projects_md,
    format_sections_md,
    truncate_response,
)
from todoist_sync.models import (
    CloseBlockInput,
    CreateTaskInput,
    ListProjectsInput,
    ListSectionsInput,
    RefreshViewsInput,
    RenderBlockInput,
    ResponseFormat,
    ToggleTaskInput,
)
from todoist_sync.settings import load_settings
from todoist_sync.views import (
    TOKEN_MISSING,
    RefreshScheduler,
    TaskBlockView,
    ViewRegistry,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan - shared client, view registry and refresh scheduler
# ---------------------------------------------------------------------------

@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Create the client and start the refresh loop at startup, tear down on shutdown.

    Without an API token the server still starts; blocks render a
    message asking for one.
    """
    settings = load_settings()
    client = None
    if settings.api_token:
        client = TodoistClient(settings.api_token)
    else:
        logger.warning("TODOIST_API_TOKEN is not set; blocks will ask for a token")

    views = ViewRegistry()
    scheduler = RefreshScheduler.from_settings(views, settings)
    scheduler.start()
    logger.info(
        "Refreshing blocks every %d min", settings.refresh_interval_minutes
    )

    try:
        yield {
            "todoist": client,
            "settings": settings,
            "views": views,
            "scheduler": scheduler,
        }
    finally:
        await scheduler.stop()
        views.clear()
        if client:
            await client.close()


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "todoist_sync",
    instructions=(
        "Mirrors Todoist tasks into ```todoist blocks. Call todoist_render_block "
        "with the block body ('project:123', 'section:456', 'filter:today | overdue', "
        "a bare project id, a bare filter, or empty for the default) to get a nested "
        "checklist. Report checkbox changes with todoist_toggle_task and call "
        "todoist_close_block when a block is no longer shown. Use "
        "todoist_list_projects and todoist_list_sections to discover ids."
    ),
    lifespan=app_lifespan,
)


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------

def _handle_error(e: Exception) -> str:
    """Convert exceptions to user-facing error messages."""
    if isinstance(e, TodoistAPIError):
        if e.status_code == 401:
            return (
                "Error: Authentication failed. Your Todoist API token may be "
                "invalid. Copy it again from Todoist Settings > Integrations > Developer."
            )
        if e.status_code == 403:
            return "Error: Permission denied for this Todoist resource."
        if e.status_code == 404:
            return "Error: Resource not found. Use todoist_list_projects to find valid ids."
        if e.status_code == 429:
            return "Error: Rate limit exceeded. Wait a moment before retrying."
        return f"Error: Todoist API returned status {e.status_code}: {e.detail}"
    if isinstance(e, SyncCommandError):
        return f"Error: Todoist rejected {e.command}: {e.detail}"
    if isinstance(e, ValueError):
        return f"Error: Invalid input - {e}"
    return f"Error: {type(e).__name__} - {e}"


def _state(ctx) -> dict:
    return ctx.request_context.lifespan_context


def _get_client(ctx) -> TodoistClient:
    """Extract the Todoist client from request context. Raises if no token was set."""
    client = _state(ctx).get("todoist")
    if client is None:
        raise ValueError(TOKEN_MISSING)
    return client


def _get_view(ctx, source: str) -> TaskBlockView:
    """The registered view for ``source``, registering a new one if needed."""
    state = _state(ctx)
    views: ViewRegistry = state["views"]
    view = views.get(source)
    if view is None:
        view = views.add(TaskBlockView(source, state.get("todoist"), state["settings"]))
    return view


# ===================================================================
# BLOCK TOOLS
# ===================================================================


@mcp.tool(
    name="todoist_render_block",
    annotations={
        "title": "Render Todoist Block",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def todoist_render_block(params: RenderBlockInput, ctx: Context) -> str:
    """Render a ```todoist block as a nested task checklist.

    The block is registered and re-fetched on the refresh interval.
    Subtasks are nested under their parent; a subtask whose parent is not
    part of the selection is shown at the top level.

    Args:
        params: Contains source (the block body) and response_format.

    Returns:
        Markdown checklist, or JSON with the selection and the task forest.

    Examples:
        - "Show today's tasks" -> source="today"
        - "Show project 2203306141" -> source="project:2203306141"
        - "Overdue or due today" -> source="filter:today | overdue"
    """
    try:
        view = _get_view(ctx, params.source)
        snapshot = await view.refresh()
        if params.response_format == ResponseFormat.JSON and snapshot.error is None:
            payload = {
                "selection": snapshot.selection.model_dump() if snapshot.selection else None,
                "count": len(snapshot.roots),
                "roots": [root.model_dump() for root in snapshot.roots],
            }
            return truncate_response(format_json(payload))
        return truncate_response(snapshot.markdown)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="todoist_toggle_task",
    annotations={
        "title": "Toggle Todoist Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def todoist_toggle_task(params: ToggleTaskInput, ctx: Context) -> str:
    """Apply a checkbox change from a rendered block.

    completed=true closes the task, completed=false reopens it. The block
    is re-rendered afterwards.

    Args:
        params: Contains source (block body), task_id and completed.

    Returns:
        A notice ("Task completed", "Task reopened" or an error) followed by
        the refreshed checklist.
    """
    try:
        view = _get_view(ctx, params.source)
        notice = await view.on_toggle(params.task_id, params.completed)
        body = view.snapshot.markdown if view.snapshot else ""
        return truncate_response(f"{notice}\n\n{body}".strip())
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="todoist_refresh_views",
    annotations={
        "title": "Refresh Todoist Blocks",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def todoist_refresh_views(params: RefreshViewsInput, ctx: Context) -> str:
    """Refresh every registered block now instead of waiting for the interval."""
    try:
        state = _state(ctx)
        scheduler: RefreshScheduler = state["scheduler"]
        count = await scheduler.tick()
        return f"Refreshed {count} of {len(state['views'])} blocks."
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="todoist_close_block",
    annotations={
        "title": "Close Todoist Block",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def todoist_close_block(params: CloseBlockInput, ctx: Context) -> str:
    """Stop refreshing a block once it is no longer shown.

    Args:
        params: Contains source (the block body).

    Returns:
        Confirmation, or a note that the block was not registered.
    """
    try:
        views: ViewRegistry = _state(ctx)["views"]
        view = views.get(params.source)
        if view is None:
            return "Block was not registered."
        views.remove(view)
        return f"Closed block. {len(views)} still registered."
    except Exception as e:
        return _handle_error(e)


# ===================================================================
# PROJECT / SECTION TOOLS
# ===================================================================


@mcp.tool(
    name="todoist_list_projects",
    annotations={
        "title": "List Todoist Projects",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def todoist_list_projects(params: ListProjectsInput, ctx: Context) -> str:
    """List all Todoist projects, nested by parent.

    Use this to find the project id for a 'project:<id>' block.

    Args:
        params: Contains response_format ('markdown' or 'json').

    Returns:
        Markdown project tree, or JSON array of project objects.
    """
    try:
        client = _get_client(ctx)
        projects = await client.fetch_projects()
        if params.response_format == ResponseFormat.JSON:
            return truncate_response(format_json(projects))
        return truncate_response(format_projects_md(projects))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="todoist_list_sections",
    annotations={
        "title": "List Todoist Sections",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def todoist_list_sections(params: ListSectionsInput, ctx: Context) -> str:
    """List sections, either all of them or one project's (sorted by order).

    Args:
        params: Contains optional project_id and response_format.

    Returns:
        Markdown or JSON list of sections.
    """
    try:
        client = _get_client(ctx)
        if params.project_id:
            sections = await client.fetch_sections(params.project_id)
        else:
            sections = await client.fetch_all_sections()
        if params.response_format == ResponseFormat.JSON:
            return truncate_response(format_json(sections))
        return truncate_response(format_sections_md(sections))
    except Exception as e:
        return _handle_error(e)


# ===================================================================
# TASK TOOLS
# ===================================================================


@mcp.tool(
    name="todoist_create_task",
    annotations={
        "title": "Create Todoist Task",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def todoist_create_task(params: CreateTaskInput, ctx: Context) -> str:
    """Create a task (or a subtask, with parent_id) in a Todoist project.

    Args:
        params: Contains content and project_id (required), plus optional
                description, section_id, parent_id, priority, due_date, due_string.

    Returns:
        Confirmation with the new task id.

    Examples:
        - "Add 'Buy milk' to Groceries" -> content="Buy milk", project_id=...
        - "Add an urgent subtask due tomorrow" -> parent_id=..., priority=4, due_string="tomorrow"
    """
    try:
        client = _get_client(ctx)
        task_id = await client.create_task(params)
        if not task_id:
            return "Task created successfully."
        return f"Task created successfully.\n\n- **ID**: `{task_id}`"
    except Exception as e:
        return _handle_error(e)
