"""Serialized reducer over one workspace's in-memory state.

Local operations and remote updates from the live subscription are two
producers feeding a single queue. One worker task consumes it, so a remote
update can never land in the middle of a local read-modify-write.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from protracker.core.modules.project.models import Project, ProjectDetails
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.core.modules.workflow.propagation import PropagationResult
from protracker.core.modules.workspace.models import Workspace
from protracker.errors import NotFoundError, StaleOverwriteError, TransportUnavailableError
from protracker.utils import mask_code

if TYPE_CHECKING:
    from protracker.core.modules.project.service import ProjectService
    from protracker.core.modules.template.service import TemplateService
    from protracker.core.modules.workspace.service import WorkspaceService
    from protracker.core.modules.workspace.store import Subscription

logger = structlog.get_logger(__name__)

T = TypeVar("T")
ProjectMutation = Callable[[Project], Project]


@dataclass
class _RemoteUpdate:
    workspace: Workspace | None


@dataclass
class _Operation:
    run: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]


def _closed_error() -> TransportUnavailableError:
    return TransportUnavailableError("Live sync for this workspace has stopped. Try again.")


def _fail_closed(message: _Operation) -> None:
    if not message.future.done():
        message.future.set_exception(_closed_error())


class WorkspaceSession:
    """Live mirror of a workspace that applies all changes one at a time."""

    def __init__(
        self,
        code: str,
        workspaces: WorkspaceService,
        projects: ProjectService,
        templates: TemplateService,
    ) -> None:
        self.code = code
        self._workspaces = workspaces
        self._projects = projects
        self._templates = templates
        self._queue: asyncio.Queue[_Operation | _RemoteUpdate] = asyncio.Queue()
        self._state: Workspace | None = None
        self._subscription: Subscription | None = None
        self._worker: asyncio.Task[None] | None = None
        self._current: _Operation | None = None
        self._closed = False
        self.last_used = time.monotonic()

    @property
    def state(self) -> Workspace:
        if self._state is None:
            raise RuntimeError("Workspace session not started")
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_used(self) -> None:
        self.last_used = time.monotonic()

    @property
    def busy(self) -> bool:
        return self._current is not None or not self._queue.empty()

    def idle_seconds(self) -> float:
        """Seconds since the last operation was submitted."""
        return time.monotonic() - self.last_used

    async def start(self) -> None:
        """Load the workspace and begin listening for remote changes."""
        self._state = await self._workspaces.read_all(self.code)
        self._worker = asyncio.create_task(self._run())
        try:
            self._subscription = await self._workspaces.subscribe(self.code, self._on_remote_change)
        except BaseException:
            await self.close()
            raise
        logger.info("workspace_session_started", workspace=mask_code(self.code), projects=len(self.state.projects))

    async def close(self) -> None:
        """Stop the worker. Pending and later operations fail with TransportUnavailableError."""
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.cancel()
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
        while not self._queue.empty():
            message = self._queue.get_nowait()
            if isinstance(message, _Operation):
                _fail_closed(message)
        logger.info("workspace_session_closed", workspace=mask_code(self.code))

    async def submit(self, run: Callable[[], Awaitable[T]]) -> T:
        """Queue an operation and wait for the worker to run it."""
        if self._closed:
            raise _closed_error()
        self.mark_used()
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_Operation(run, future))
        return await future

    # === Operations ===
    async def snapshot(self) -> Workspace:
        async def run() -> Workspace:
            return self.state.model_copy(deep=True)

        return await self.submit(run)

    async def get_project(self, project_id: str) -> Project:
        async def run() -> Project:
            return self._require_project(project_id).model_copy(deep=True)

        return await self.submit(run)

    async def mutate_project(
        self, project_id: str, mutation: ProjectMutation, expected_revision: int | None = None
    ) -> Project:
        """Apply a pure mutation to a project and persist the result.

        ``expected_revision`` is the revision the caller based its change on;
        a mismatch fails before anything is written.
        """

        async def run() -> Project:
            project = self._require_project(project_id)
            if expected_revision is not None and expected_revision != project.revision:
                raise StaleOverwriteError(
                    f"Project '{project.name}' has changed (revision {project.revision}, yours {expected_revision}). "
                    "Reload and try again."
                )
            updated = mutation(project)
            try:
                saved = await self._projects.save_project(self.code, updated)
            except StaleOverwriteError:
                await self._reload()
                raise
            self._put_project(saved)
            return saved.model_copy(deep=True)

        return await self.submit(run)

    async def create_project(self, details: ProjectDetails) -> Project:
        async def run() -> Project:
            project = await self._projects.create_project(self.code, details, self.state.template)
            self._put_project(project, prepend=True)
            return project

        return await self.submit(run)

    async def delete_project(self, project_id: str) -> None:
        async def run() -> None:
            await self._projects.delete_project(self.code, project_id)
            self.state.projects = [p for p in self.state.projects if p.id != project_id]

        await self.submit(run)

    async def import_projects(self, raw_projects: list[dict[str, Any]]) -> list[Project]:
        async def run() -> list[Project]:
            imported = await self._projects.import_legacy_projects(self.code, raw_projects)
            for project in reversed(imported):
                self._put_project(project, prepend=True)
            return imported

        return await self.submit(run)

    async def save_template(self, entries: list[StepTemplateEntry], propagate: bool = True) -> PropagationResult:
        async def run() -> PropagationResult:
            result = await self._templates.save_template(self.code, entries, propagate)
            await self._reload()
            return result

        return await self.submit(run)

    async def reset_template(self, propagate: bool = True) -> PropagationResult:
        async def run() -> PropagationResult:
            result = await self._templates.reset_template(self.code, propagate)
            await self._reload()
            return result

        return await self.submit(run)

    # === Worker ===
    async def _on_remote_change(self, workspace: Workspace | None) -> None:
        self._queue.put_nowait(_RemoteUpdate(workspace))

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            if isinstance(message, _RemoteUpdate):
                self._apply_remote(message.workspace)
                continue
            if message.future.done():
                continue
            self._current = message
            try:
                result = await message.run()
            except asyncio.CancelledError:
                _fail_closed(message)
                raise
            except Exception as e:
                if not message.future.done():
                    message.future.set_exception(e)
            else:
                if not message.future.done():
                    message.future.set_result(result)
            finally:
                self._current = None

    def _apply_remote(self, workspace: Workspace | None) -> None:
        if workspace is None:
            logger.warning("workspace_removed_remotely", workspace=mask_code(self.code))
            self._state = Workspace()
            return

        # A remote snapshot older than our own last save must not roll a project back
        held = {project.id: project for project in self.state.projects}
        merged = []
        for incoming in workspace.projects:
            current = held.get(incoming.id)
            merged.append(current if current is not None and current.revision > incoming.revision else incoming)
        self._state = workspace.model_copy(update={"projects": merged})
        logger.debug("remote_update_applied", workspace=mask_code(self.code), projects=len(merged))

    async def _reload(self) -> None:
        self._state = await self._workspaces.read_all(self.code)

    def _require_project(self, project_id: str) -> Project:
        project = self.state.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    def _put_project(self, project: Project, prepend: bool = False) -> None:
        projects = self.state.projects
        for index, existing in enumerate(projects):
            if existing.id == project.id:
                if project.revision >= existing.revision:
                    projects[index] = project
                return
        if prepend:
            projects.insert(0, project)
        else:
            projects.append(project)
