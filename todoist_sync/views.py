"""Task block views and their periodic refresh.

A view is one ```todoist block. Each refresh runs the whole pipeline
(parse -> fetch -> map -> filter -> build forest -> render) and replaces
the view's immutable snapshot. User actions come back as discrete calls
(``handle_toggle``) rather than mutations of rendered output.

The registry tracks which views are live; the scheduler refreshes every
registered view on a fixed interval. Both are passed explicitly to
whoever owns them (the server lifespan), so there is no global state.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator

import httpx

from todoist_sync.client import SyncCommandError, TodoistAPIError, TodoistClient
from todoist_sync.formatting import format_forest_md
from todoist_sync.models import Query, Selection, TaskNode
from todoist_sync.query import parse_query, resolve_selection
from todoist_sync.settings import Settings
from todoist_sync.tree import build_forest

logger = logging.getLogger(__name__)

TOKEN_MISSING = "Todoist: Set your API token (TODOIST_API_TOKEN) in the server settings."

# (task_id, completed) -> user-facing notice
ToggleHandler = Callable[[str, bool], Awaitable[str]]

_CLIENT_ERRORS = (TodoistAPIError, SyncCommandError, httpx.HTTPError)


@dataclass(frozen=True)
class ViewSnapshot:
    """What a block currently shows."""

    selection: Selection | None
    roots: tuple[TaskNode, ...]
    markdown: str
    error: str | None = None


class TaskBlockView:
    def __init__(self, source: str, client: TodoistClient | None, settings: Settings) -> None:
        self.source = source
        self._client = client
        self._settings = settings
        self.snapshot: ViewSnapshot | None = None

    @property
    def key(self) -> str:
        return self.source.strip()

    @property
    def query(self) -> Query:
        return parse_query(self.source)

    def selection(self) -> Selection:
        return resolve_selection(
            self.query,
            self._settings.default_project_or_filter,
            include_completed=self._settings.show_completed_tasks,
        )

    async def refresh(self) -> ViewSnapshot:
        """Re-run the pipeline and replace the snapshot."""
        if self._client is None:
            self.snapshot = ViewSnapshot(selection=None, roots=(), markdown=TOKEN_MISSING)
            return self.snapshot

        selection = self.selection()
        try:
            tasks = await self._client.fetch_tasks(selection)
        except _CLIENT_ERRORS as e:
            logger.warning("Fetching block %r failed: %s", self.key, e)
            self.snapshot = ViewSnapshot(
                selection=selection, roots=(), markdown=f"Todoist: {e}", error=str(e),
            )
            return self.snapshot

        roots = build_forest(tasks)
        self.snapshot = ViewSnapshot(
            selection=selection,
            roots=tuple(roots),
            markdown=format_forest_md(roots, show_completed=self._settings.show_completed_tasks),
        )
        return self.snapshot

    async def render(self) -> str:
        return (await self.refresh()).markdown

    async def handle_toggle(self, task_id: str, completed: bool) -> str:
        """Close or reopen ``task_id`` as the checkbox says, then refresh."""
        if self._client is None:
            return TOKEN_MISSING
        try:
            if completed:
                await self._client.close_task(task_id)
            else:
                await self._client.reopen_task(task_id)
            notice = "Task completed" if completed else "Task reopened"
        except _CLIENT_ERRORS as e:
            logger.warning("Toggling task %s failed: %s", task_id, e)
            notice = f"Todoist: {e}"
        await self.refresh()
        return notice

    @property
    def on_toggle(self) -> ToggleHandler:
        return self.handle_toggle


class ViewRegistry:
    """Live views, keyed by block body."""

    def __init__(self) -> None:
        self._views: dict[str, TaskBlockView] = {}

    def add(self, view: TaskBlockView) -> TaskBlockView:
        """Register ``view`` unless a view for the same block exists; return the live one."""
        return self._views.setdefault(view.key, view)

    def remove(self, view: TaskBlockView) -> None:
        if self._views.get(view.key) is view:
            del self._views[view.key]

    def get(self, source: str) -> TaskBlockView | None:
        return self._views.get(source.strip())

    def clear(self) -> None:
        self._views.clear()

    def __iter__(self) -> Iterator[TaskBlockView]:
        return iter(list(self._views.values()))

    def __len__(self) -> int:
        return len(self._views)


class RefreshScheduler:
    """Refresh every registered view each ``interval_seconds``."""

    def __init__(self, registry: ViewRegistry, *, interval_seconds: float) -> None:
        self._registry = registry
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, registry: ViewRegistry, settings: Settings) -> RefreshScheduler:
        return cls(registry, interval_seconds=settings.refresh_interval_minutes * 60)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> int:
        """Refresh all views once. Returns how many refreshed without raising."""
        refreshed = 0
        for view in self._registry:
            try:
                await view.refresh()
                refreshed += 1
            except Exception:
                logger.exception("Refreshing block %r failed", view.key)
        return refreshed

    async def run(self) -> None:
        """Loop until cancelled. The first refresh happens one interval in."""
        while True:
            await asyncio.sleep(self.interval_seconds)
            count = await self.tick()
            logger.debug("Refreshed %d/%d blocks", count, len(self._registry))

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
