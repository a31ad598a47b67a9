"""Checklist mutations.

Checking an item stamps its completion date when none is set; unchecking
clears it. A date entered by hand is independent of the checkbox: it can be
set while unchecked and survives both checking and unchecking.
"""

from datetime import date, datetime

from protracker.core.modules.project.models import ChecklistItem, Project, SubNote
from protracker.core.modules.workflow.engine import step_at
from protracker.errors import ValidationError
from protracker.utils import as_utc, now


def _item_at(project: Project, step_index: int, item_index: int) -> ChecklistItem:
    checklist = step_at(project, step_index).checklist
    if not 0 <= item_index < len(checklist):
        raise ValidationError(f"Checklist item index out of range: {item_index}")
    return checklist[item_index]


def _clean_text(text: str) -> str:
    text = text.strip()
    if not text:
        raise ValidationError("Text cannot be empty")
    return text


def add_checklist_item(project: Project, step_index: int, text: str, deadline: date | None = None) -> Project:
    updated = project.model_copy(deep=True)
    step_at(updated, step_index).checklist.append(
        ChecklistItem(text=_clean_text(text), created_at=now(), deadline=deadline)
    )
    return updated


def edit_checklist_item(project: Project, step_index: int, item_index: int, text: str) -> Project:
    updated = project.model_copy(deep=True)
    _item_at(updated, step_index, item_index).text = _clean_text(text)
    return updated


def set_item_checked(project: Project, step_index: int, item_index: int, checked: bool) -> Project:
    updated = project.model_copy(deep=True)
    item = _item_at(updated, step_index, item_index)
    item.checked = checked
    if checked:
        if item.completed_at is None:
            item.completed_at = now()
    elif not item.completed_at_manual:
        item.completed_at = None
    return updated


def set_item_completed_at(project: Project, step_index: int, item_index: int, value: datetime | None) -> Project:
    """Set the completion date by hand without touching the checkbox."""
    updated = project.model_copy(deep=True)
    item = _item_at(updated, step_index, item_index)
    item.completed_at = as_utc(value) if value is not None else None
    item.completed_at_manual = value is not None
    return updated


def set_item_deadline(project: Project, step_index: int, item_index: int, deadline: date | None) -> Project:
    updated = project.model_copy(deep=True)
    _item_at(updated, step_index, item_index).deadline = deadline
    return updated


def delete_checklist_item(project: Project, step_index: int, item_index: int) -> Project:
    updated = project.model_copy(deep=True)
    _item_at(updated, step_index, item_index)
    del step_at(updated, step_index).checklist[item_index]
    return updated


def add_item_subnote(project: Project, step_index: int, item_index: int, text: str) -> Project:
    updated = project.model_copy(deep=True)
    _item_at(updated, step_index, item_index).subnotes.append(SubNote(text=_clean_text(text)))
    return updated


def delete_item_subnote(project: Project, step_index: int, item_index: int, subnote_index: int) -> Project:
    updated = project.model_copy(deep=True)
    subnotes = _item_at(updated, step_index, item_index).subnotes
    if not 0 <= subnote_index < len(subnotes):
        raise ValidationError(f"Sub-note index out of range: {subnote_index}")
    del subnotes[subnote_index]
    return updated
