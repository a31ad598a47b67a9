from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date, datetime
from functools import partial
from typing import Any

from protracker.config import Config
from protracker.core.core import Core
from protracker.core.modules.dashboard.models import DashboardStats, ProjectSummary, StatusFilter
from protracker.core.modules.dashboard.stats import compute_stats, filter_projects, summarize
from protracker.core.modules.project.models import NoteKind, Project, ProjectDetails
from protracker.core.modules.sync.session import ProjectMutation, WorkspaceSession
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.core.modules.workflow import checklist, engine, notes
from protracker.core.modules.workflow.propagation import PropagationResult, apply_template_to_project
from protracker.core.modules.workspace.models import Workspace
from protracker.utils import today


class App:
    """Facade for all application operations.

    Every call names its workspace by access code. Mutations go through the
    workspace's session so they are applied one at a time.
    """

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Workspace ===
    async def open_workspace(self, code: str) -> tuple[Workspace, bool]:
        """Open a workspace by access code, creating it if the code is new."""
        return await self._core.services.workspace.open(code)

    async def get_dashboard(self, code: str) -> DashboardStats:
        workspace = await (await self._session(code)).snapshot()
        return compute_stats(workspace.projects, today())

    # === Projects ===
    async def list_projects(
        self, code: str, query: str = "", status: StatusFilter = StatusFilter.ALL
    ) -> list[ProjectSummary]:
        workspace = await (await self._session(code)).snapshot()
        current_day = today()
        return [summarize(p, current_day) for p in filter_projects(workspace.projects, current_day, query, status)]

    async def get_project(self, code: str, project_id: str) -> Project:
        """Load a project for display, with timelines newest first."""
        project = await (await self._session(code)).get_project(project_id)
        return notes.with_timeline_display_order(project)

    async def create_project(self, code: str, details: ProjectDetails) -> Project:
        return await (await self._session(code)).create_project(details)

    async def update_project_details(
        self, code: str, project_id: str, details: ProjectDetails, expected_revision: int | None = None
    ) -> Project:
        return await self._mutate(code, project_id, lambda p: p.with_details(details), expected_revision)

    async def delete_project(self, code: str, project_id: str) -> None:
        await (await self._session(code)).delete_project(project_id)

    async def import_legacy_projects(self, code: str, raw_projects: list[dict[str, Any]]) -> list[Project]:
        return await (await self._session(code)).import_projects(raw_projects)

    # === Steps ===
    async def complete_step(
        self,
        code: str,
        project_id: str,
        step_index: int,
        document_number: str | None = None,
        completed_at: datetime | None = None,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(
            engine.complete_step, step_index=step_index, document_number=document_number, completed_at=completed_at
        )
        return await self._mutate(code, project_id, mutation, expected_revision)

    async def revert_step(
        self, code: str, project_id: str, step_index: int, expected_revision: int | None = None
    ) -> Project:
        return await self._mutate(code, project_id, partial(engine.revert_step, step_index=step_index), expected_revision)

    async def toggle_step(
        self,
        code: str,
        project_id: str,
        step_index: int,
        document_number: str | None = None,
        completed_at: datetime | None = None,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(
            engine.toggle_step, step_index=step_index, document_number=document_number, completed_at=completed_at
        )
        return await self._mutate(code, project_id, mutation, expected_revision)

    # === Checklist ===
    async def add_checklist_item(
        self,
        code: str,
        project_id: str,
        step_index: int,
        text: str,
        deadline: date | None = None,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(checklist.add_checklist_item, step_index=step_index, text=text, deadline=deadline)
        return await self._mutate(code, project_id, mutation, expected_revision)

    async def update_checklist_item(
        self,
        code: str,
        project_id: str,
        step_index: int,
        item_index: int,
        changes: dict[str, Any],
        expected_revision: int | None = None,
    ) -> Project:
        """Apply any of ``text``, ``checked``, ``completed_at``, ``deadline`` in one save.

        ``changes`` holds only the fields the caller sent; an explicit None
        clears a date.
        """

        def mutation(project: Project) -> Project:
            if "text" in changes:
                project = checklist.edit_checklist_item(project, step_index, item_index, changes["text"])
            if "completed_at" in changes:
                project = checklist.set_item_completed_at(project, step_index, item_index, changes["completed_at"])
            if "checked" in changes:
                project = checklist.set_item_checked(project, step_index, item_index, changes["checked"])
            if "deadline" in changes:
                project = checklist.set_item_deadline(project, step_index, item_index, changes["deadline"])
            return project

        return await self._mutate(code, project_id, mutation, expected_revision)

    async def delete_checklist_item(
        self, code: str, project_id: str, step_index: int, item_index: int, expected_revision: int | None = None
    ) -> Project:
        mutation = partial(checklist.delete_checklist_item, step_index=step_index, item_index=item_index)
        return await self._mutate(code, project_id, mutation, expected_revision)

    async def add_checklist_subnote(
        self,
        code: str,
        project_id: str,
        step_index: int,
        item_index: int,
        text: str,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(checklist.add_item_subnote, step_index=step_index, item_index=item_index, text=text)
        return await self._mutate(code, project_id, mutation, expected_revision)

    async def delete_checklist_subnote(
        self,
        code: str,
        project_id: str,
        step_index: int,
        item_index: int,
        subnote_index: int,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(
            checklist.delete_item_subnote, step_index=step_index, item_index=item_index, subnote_index=subnote_index
        )
        return await self._mutate(code, project_id, mutation, expected_revision)

    # === Notes ===
    async def add_note(
        self,
        code: str,
        project_id: str,
        step_index: int,
        kind: NoteKind,
        text: str,
        timestamp: datetime | None = None,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(notes.add_note, step_index=step_index, kind=kind, text=text, timestamp=timestamp)
        return await self._mutate(code, project_id, mutation, expected_revision)

    async def edit_note(
        self,
        code: str,
        project_id: str,
        step_index: int,
        kind: NoteKind,
        note_id: str,
        text: str,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(notes.edit_note, step_index=step_index, kind=kind, note_id=note_id, text=text)
        return await self._mutate(code, project_id, mutation, expected_revision)

    async def delete_note(
        self,
        code: str,
        project_id: str,
        step_index: int,
        kind: NoteKind,
        note_id: str,
        expected_revision: int | None = None,
    ) -> Project:
        mutation = partial(notes.delete_note, step_index=step_index, kind=kind, note_id=note_id)
        return await self._mutate(code, project_id, mutation, expected_revision)

    # === Settings ===
    async def get_template(self, code: str) -> list[StepTemplateEntry]:
        workspace = await (await self._session(code)).snapshot()
        return workspace.template

    async def save_template(
        self, code: str, entries: list[StepTemplateEntry], propagate: bool = True
    ) -> PropagationResult:
        """Save the workspace template, retrofitting projects of the same length."""
        return await (await self._session(code)).save_template(entries, propagate)

    async def reset_template(self, code: str, propagate: bool = True) -> PropagationResult:
        return await (await self._session(code)).reset_template(propagate)

    async def apply_template_to_project(
        self, code: str, project_id: str, expected_revision: int | None = None
    ) -> Project:
        """Reshape a single project to the current workspace template."""
        session = await self._session(code)
        template = (await session.snapshot()).template
        return await session.mutate_project(
            project_id, partial(apply_template_to_project, template=template), expected_revision
        )

    # === Private helpers ===
    async def _session(self, code: str) -> WorkspaceSession:
        return await self._core.services.sync.get_session(code)

    async def _mutate(
        self, code: str, project_id: str, mutation: ProjectMutation, expected_revision: int | None
    ) -> Project:
        session = await self._session(code)
        return await session.mutate_project(project_id, mutation, expected_revision)
