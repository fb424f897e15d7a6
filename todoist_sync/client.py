"""Async Todoist client using httpx.

Talks to the Todoist Sync API (https://api.todoist.com/api/v1/sync);
REST v2 task reads answer 410 Gone, so reads fetch whole resource types
and filtering happens client-side in ``todoist_sync.queries``.
Designed to be used as a lifespan-managed singleton: one httpx.AsyncClient
is created at server start and reused for all requests.
"""

from __future__ import annotations

import json
import logging
import os
import uuid

import httpx
from dotenv import load_dotenv

from todoist_sync.mapping import map_tasks, map_to_project, map_to_section
from todoist_sync.models import CreateTaskInput, Project, Section, Selection, Task
from todoist_sync.queries import apply_filter, filter_by_scope, sort_by_order

load_dotenv()

logger = logging.getLogger(__name__)

SYNC_URL = "https://api.todoist.com/api/v1/sync"
REQUEST_TIMEOUT = 30.0


class TodoistAPIError(Exception):
    """Raised when the Sync endpoint answers with a non-200 status."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Todoist API error {status_code}: {detail}")


class SyncCommandError(Exception):
    """Raised when Todoist rejects a sync command (sync_status carries an error)."""

    def __init__(self, command: str, detail: str) -> None:
        self.command = command
        self.detail = detail
        super().__init__(detail)


class TodoistClient:
    """Async wrapper around the Todoist Sync API.

    Usage with lifespan:
        client = TodoistClient()   # reads token from env
        tasks = await client.fetch_tasks(Selection(filter="today"))
        await client.close()
    """

    def __init__(self, api_token: str | None = None) -> None:
        self._api_token = api_token or os.getenv("TODOIST_API_TOKEN", "")
        if not self._api_token:
            raise ValueError(
                "TODOIST_API_TOKEN is required. "
                "Set it in your .env file or pass it directly. "
                "Find it under Todoist Settings > Integrations > Developer."
            )
        self._http = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self._api_token}"},
            timeout=REQUEST_TIMEOUT,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _post(self, form: dict[str, str]) -> dict:
        """POST a form to the sync endpoint and return the decoded body."""
        response = await self._http.post(SYNC_URL, data=form)
        if response.status_code != 200:
            detail = response.text or f"HTTP {response.status_code}"
            raise TodoistAPIError(response.status_code, detail)
        if not response.text:
            return {}
        try:
            result = response.json()
        except ValueError as e:
            raise TodoistAPIError(response.status_code, f"Response is not JSON: {e}") from e
        return result if isinstance(result, dict) else {}

    async def _command(self, command_type: str, args: dict, *, temp_id: str | None = None) -> dict:
        """Run one sync command and raise if Todoist reports it failed."""
        command_uuid = str(uuid.uuid4())
        command: dict = {"type": command_type, "uuid": command_uuid, "args": args}
        if temp_id is not None:
            command["temp_id"] = temp_id

        data = await self._post({"commands": json.dumps([command])})

        status = (data.get("sync_status") or {}).get(command_uuid)
        if isinstance(status, dict) and status.get("error"):
            raise SyncCommandError(command_type, str(status["error"]))
        logger.debug("Sync command %s ok (%s)", command_type, command_uuid)
        return data

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def sync_read(self, resource_types: list[str]) -> dict:
        """Full sync (sync_token='*') of the given resource types."""
        return await self._post({
            "sync_token": "*",
            "resource_types": json.dumps(resource_types),
        })

    async def get_items(self) -> list[dict]:
        """Raw task records ("items" in Sync API terms)."""
        data = await self.sync_read(["items"])
        return data.get("items") or []

    async def get_projects(self) -> list[dict]:
        data = await self.sync_read(["projects"])
        return data.get("projects") or []

    async def get_sections(self) -> list[dict]:
        data = await self.sync_read(["sections"])
        return data.get("sections") or []

    async def fetch_tasks(self, selection: Selection) -> list[Task]:
        """Fetch tasks for one view: mapped, scoped, filtered, ordered."""
        tasks = map_tasks(await self.get_items())
        tasks = filter_by_scope(
            tasks,
            project_id=selection.project_id,
            section_id=selection.section_id,
            include_completed=selection.include_completed,
        )
        if selection.filter:
            tasks = apply_filter(tasks, selection.filter)
        logger.debug("Fetched %d tasks for %s", len(tasks), selection)
        return sort_by_order(tasks)

    async def fetch_projects(self) -> list[Project]:
        return [map_to_project(p) for p in await self.get_projects()]

    async def fetch_all_sections(self) -> list[Section]:
        return [map_to_section(s) for s in await self.get_sections()]

    async def fetch_sections(self, project_id: str) -> list[Section]:
        """Sections of one project, sorted by order."""
        sections = [s for s in await self.fetch_all_sections() if s.project_id == project_id]
        return sorted(sections, key=lambda s: s.order)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def close_task(self, task_id: str) -> None:
        """item_complete: mark a task done."""
        await self._command("item_complete", {"id": task_id})

    async def reopen_task(self, task_id: str) -> None:
        """item_uncomplete: reopen a completed task."""
        await self._command("item_uncomplete", {"id": task_id})

    async def create_task(self, params: CreateTaskInput) -> str:
        """item_add: create a task. Returns the new id, or '' if Todoist omitted it."""
        args: dict = {"content": params.content, "project_id": params.project_id}
        if params.description:
            args["description"] = params.description
        if params.section_id:
            args["section_id"] = params.section_id
        if params.parent_id:
            args["parent_id"] = params.parent_id
        if params.priority > 1:
            args["priority"] = int(params.priority)
        if params.due_string:
            args["due"] = {"string": params.due_string}
        elif params.due_date:
            args["due"] = {"date": params.due_date}

        temp_id = str(uuid.uuid4())
        data = await self._command("item_add", args, temp_id=temp_id)
        return (data.get("temp_id_mapping") or {}).get(temp_id, "")
