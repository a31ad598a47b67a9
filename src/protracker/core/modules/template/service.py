import structlog

from protracker.core.core import Service
from protracker.core.modules.template.models import StepTemplateEntry, default_template, normalize_template
from protracker.core.modules.workflow.propagation import PropagationResult, apply_template_globally
from protracker.errors import StaleOverwriteError
from protracker.utils import mask_code

logger = structlog.get_logger(__name__)


class TemplateService(Service):
    """Workspace step template (the "settings") and its propagation."""

    async def get_template(self, code: str) -> list[StepTemplateEntry]:
        workspace = await self.core.services.workspace.read_all(code)
        return workspace.template

    async def save_template(
        self, code: str, entries: list[StepTemplateEntry], propagate: bool = True
    ) -> PropagationResult:
        """Store the template and optionally retrofit projects with the same step count.

        Each rewritten project is saved with compare-and-set; projects changed
        concurrently are reported in ``conflicted_ids`` and left as they are.
        """
        template = normalize_template(entries)
        await self.core.services.workspace.write_merge(
            code, {"customSteps": [entry.to_document() for entry in template]}
        )
        if not propagate:
            return PropagationResult(projects=[])

        projects = await self.core.services.project.list_projects(code)
        result = apply_template_globally(projects, template)

        saved = []
        for project in result.projects:
            try:
                saved.append(await self.core.services.project.save_project(code, project))
            except StaleOverwriteError:
                result.conflicted_ids.append(project.id)
        result.projects = saved

        logger.info(
            "template_saved",
            workspace=mask_code(code),
            steps=len(template),
            updated=len(saved),
            skipped=len(result.skipped_ids),
            conflicted=len(result.conflicted_ids),
        )
        return result

    async def reset_template(self, code: str, propagate: bool = True) -> PropagationResult:
        """Restore the built-in template."""
        return await self.save_template(code, default_template(), propagate)
