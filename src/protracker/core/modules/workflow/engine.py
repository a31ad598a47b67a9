"""Step state machine and derived project fields.

Every function takes a project and returns an updated copy; the input is
never modified. Steps can be completed and reverted in any order, and the
current-step pointer is always recomputed as the first incomplete step.
"""

import math
from datetime import datetime

from protracker.core.modules.project.models import Project, ProjectStatus, Step
from protracker.errors import ValidationError
from protracker.utils import as_utc, now


def step_at(project: Project, step_index: int) -> Step:
    """Return the step at ``step_index`` or raise ValidationError."""
    if not 0 <= step_index < len(project.steps):
        raise ValidationError(f"Step index out of range: {step_index}")
    return project.steps[step_index]


def first_incomplete_index(project: Project) -> int | None:
    for index, step in enumerate(project.steps):
        if not step.completed:
            return index
    return None


def _recompute(project: Project) -> None:
    index = first_incomplete_index(project)
    if index is None and project.steps:
        project.current_step_index = len(project.steps) - 1
        project.status = ProjectStatus.COMPLETED
    else:
        project.current_step_index = index or 0
        project.status = ProjectStatus.ACTIVE


def recompute_progress(project: Project) -> Project:
    """Restore the pointer and status invariants."""
    updated = project.model_copy(deep=True)
    _recompute(updated)
    return updated


def complete_step(
    project: Project,
    step_index: int,
    document_number: str | None = None,
    completed_at: datetime | None = None,
) -> Project:
    """Mark a step complete. ``completed_at`` may be backdated."""
    updated = project.model_copy(deep=True)
    step = step_at(updated, step_index)
    step.completed = True
    step.completed_at = as_utc(completed_at) if completed_at else now()
    step.document_number = document_number.strip() if document_number and document_number.strip() else None
    _recompute(updated)
    return updated


def revert_step(project: Project, step_index: int) -> Project:
    """Mark a step incomplete again, which can move the pointer backward."""
    updated = project.model_copy(deep=True)
    step = step_at(updated, step_index)
    step.completed = False
    step.completed_at = None
    step.document_number = None
    _recompute(updated)
    return updated


def toggle_step(
    project: Project,
    step_index: int,
    document_number: str | None = None,
    completed_at: datetime | None = None,
) -> Project:
    if step_at(project, step_index).completed:
        return revert_step(project, step_index)
    return complete_step(project, step_index, document_number, completed_at)


def progress_percent(project: Project) -> int:
    """Completed steps as a whole percentage, rounded half up."""
    total = len(project.steps)
    if total == 0:
        return 0
    return math.floor(100 * project.completed_step_count / total + 0.5)
