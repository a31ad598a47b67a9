from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from protracker.core.core import Service
from protracker.core.modules.project.models import Project, ProjectDetails, create_project
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.core.modules.workflow.engine import recompute_progress
from protracker.errors import NotFoundError, StaleOverwriteError, ValidationError
from protracker.utils import mask_code, now

logger = structlog.get_logger(__name__)


class ProjectService(Service):
    """Project repository on top of the workspace document.

    Saves are compare-and-set on the project's revision, so a client holding
    an outdated copy cannot overwrite a newer one.
    """

    async def list_projects(self, code: str) -> list[Project]:
        workspace = await self.core.services.workspace.read_all(code)
        return workspace.projects

    async def load_project(self, code: str, project_id: str) -> Project:
        workspace = await self.core.services.workspace.read_all(code)
        project = workspace.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    async def create_project(
        self, code: str, details: ProjectDetails, template: list[StepTemplateEntry] | None = None
    ) -> Project:
        """Create a project from the workspace template and put it first in the list."""
        if template is None:
            template = await self.core.services.template.get_template(code)
        project = create_project(details, template)
        await self.core.services.workspace.prepend_projects(code, [project.to_document()])
        logger.info("project_created", workspace=mask_code(code), project_id=project.id, steps=len(project.steps))
        return project

    async def save_project(self, code: str, project: Project) -> Project:
        """Persist a project changed from revision ``project.revision``.

        Returns the stored copy with the next revision.
        """
        saved = project.model_copy(update={"revision": project.revision + 1, "updated_at": now()})
        replaced = await self.core.services.workspace.replace_project(code, saved.to_document(), project.revision)
        if not replaced:
            current = await self.load_project(code, project.id)
            logger.warning(
                "project_save_stale",
                workspace=mask_code(code),
                project_id=project.id,
                base_revision=project.revision,
                current_revision=current.revision,
            )
            raise StaleOverwriteError(
                f"Project '{project.name}' was changed by someone else "
                f"(revision {current.revision}, yours {project.revision}). Reload and try again."
            )
        logger.debug("project_saved", workspace=mask_code(code), project_id=project.id, revision=saved.revision)
        return saved

    async def delete_project(self, code: str, project_id: str) -> None:
        if not await self.core.services.workspace.remove_project(code, project_id):
            raise NotFoundError(f"Project not found: {project_id}")
        logger.info("project_deleted", workspace=mask_code(code), project_id=project_id)

    async def import_legacy_projects(self, code: str, raw_projects: list[dict[str, Any]]) -> list[Project]:
        """Bring projects saved by the old local-storage client into a workspace.

        Projects are migrated on load and get their pointer and status
        recomputed. Ids already present in the workspace are skipped.
        """
        workspace = await self.core.services.workspace.read_all(code)
        known = {project.id for project in workspace.projects}

        imported = []
        for position, raw in enumerate(raw_projects):
            try:
                project = Project.model_validate(raw)
            except PydanticValidationError as e:
                raise ValidationError(f"Project #{position + 1} could not be read: {e.error_count()} invalid fields") from e
            if project.id in known:
                continue
            if not project.steps:
                raise ValidationError(f"Project #{position + 1} has no steps")
            known.add(project.id)
            imported.append(recompute_progress(project.model_copy(update={"revision": 0})))

        if imported:
            await self.core.services.workspace.prepend_projects(code, [p.to_document() for p in imported])
        logger.info("projects_imported", workspace=mask_code(code), imported=len(imported), received=len(raw_projects))
        return imported
