"""Retrofitting edited step templates onto existing projects."""

from pydantic import Field

from protracker.core.db import DocumentModel
from protracker.core.modules.project.models import ChecklistItem, Project, Step
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.core.modules.workflow.engine import recompute_progress
from protracker.errors import ValidationError
from protracker.utils import now


class PropagationResult(DocumentModel):
    """Outcome of applying a template to a set of projects."""

    projects: list[Project] = Field(..., description="Projects that were rewritten")
    skipped_ids: list[str] = Field(default_factory=list, description="Projects whose step count differs from the template")
    conflicted_ids: list[str] = Field(default_factory=list, description="Projects changed concurrently, not rewritten")


def rebuild_checklist(old: list[ChecklistItem], texts: list[str]) -> list[ChecklistItem]:
    """Rebuild a checklist from new default texts.

    Items whose text appears verbatim in both lists are kept with their state;
    each old item is reused at most once. New texts start unchecked, texts that
    disappeared are dropped.
    """
    remaining: dict[str, list[ChecklistItem]] = {}
    for item in old:
        remaining.setdefault(item.text, []).append(item)

    created_at = now()
    result = []
    for text in texts:
        matches = remaining.get(text)
        if matches:
            result.append(matches.pop(0).model_copy(deep=True))
        else:
            result.append(ChecklistItem(text=text, created_at=created_at))
    return result


def apply_template_globally(projects: list[Project], template: list[StepTemplateEntry]) -> PropagationResult:
    """Sync titles and checklists positionally into projects of matching length.

    Projects with a different number of steps are left untouched.
    """
    updated = []
    skipped = []
    for project in projects:
        if len(project.steps) != len(template):
            skipped.append(project.id)
            continue
        copy = project.model_copy(deep=True)
        for step, entry in zip(copy.steps, template, strict=True):
            step.title = entry.title
            step.checklist = rebuild_checklist(step.checklist, entry.default_checklist)
        updated.append(copy)
    return PropagationResult(projects=updated, skipped_ids=skipped)


def apply_template_to_project(project: Project, template: list[StepTemplateEntry]) -> Project:
    """Reshape one project to the template.

    Each template entry takes over the old step with the same id, else the one
    at the same position, else starts as a fresh step.
    """
    if not template:
        raise ValidationError("Step template must contain at least one step")

    by_id = {str(step.id): index for index, step in enumerate(project.steps)}
    used: set[int] = set()
    steps = []
    for position, entry in enumerate(template):
        source_index = by_id.get(str(entry.id))
        if source_index is None or source_index in used:
            source_index = position if position < len(project.steps) and position not in used else None

        if source_index is None:
            steps.append(
                Step(id=entry.id, title=entry.title, checklist=rebuild_checklist([], entry.default_checklist))
            )
            continue

        used.add(source_index)
        step = project.steps[source_index].model_copy(deep=True)
        step.id = entry.id
        step.title = entry.title
        step.checklist = rebuild_checklist(step.checklist, entry.default_checklist)
        steps.append(step)

    updated = project.model_copy(update={"steps": steps}, deep=True)
    updated.current_step_index = min(updated.current_step_index, len(steps) - 1)
    return recompute_progress(updated)
