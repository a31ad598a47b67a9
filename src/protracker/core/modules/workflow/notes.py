"""Timeline and postit mutations."""

from datetime import datetime

from protracker.core.modules.project.models import Note, NoteKind, Project, Step
from protracker.core.modules.workflow.engine import step_at
from protracker.errors import NotFoundError, ValidationError
from protracker.utils import as_utc, now


def _find_note(notes: list[Note], note_id: str) -> int:
    for index, note in enumerate(notes):
        if note.id == note_id:
            return index
    raise NotFoundError(f"Note not found: {note_id}")


def add_note(
    project: Project, step_index: int, kind: NoteKind, text: str, timestamp: datetime | None = None
) -> Project:
    """Append a note. The timestamp can be given to record a past event."""
    text = text.strip()
    if not text:
        raise ValidationError("Note text cannot be empty")
    updated = project.model_copy(deep=True)
    note = Note(text=text, timestamp=as_utc(timestamp) if timestamp else now())
    step_at(updated, step_index).notes(kind).append(note)
    return updated


def add_timeline_note(project: Project, step_index: int, text: str, timestamp: datetime | None = None) -> Project:
    return add_note(project, step_index, NoteKind.TIMELINE, text, timestamp)


def add_postit(project: Project, step_index: int, text: str) -> Project:
    return add_note(project, step_index, NoteKind.POSTIT, text)


def edit_note(project: Project, step_index: int, kind: NoteKind, note_id: str, text: str) -> Project:
    text = text.strip()
    if not text:
        raise ValidationError("Note text cannot be empty")
    updated = project.model_copy(deep=True)
    notes = step_at(updated, step_index).notes(kind)
    notes[_find_note(notes, note_id)].text = text
    return updated


def delete_note(project: Project, step_index: int, kind: NoteKind, note_id: str) -> Project:
    updated = project.model_copy(deep=True)
    notes = step_at(updated, step_index).notes(kind)
    del notes[_find_note(notes, note_id)]
    return updated


def timeline_display_order(step: Step) -> list[Note]:
    """Timeline newest first; entries without a timestamp go last."""
    dated = sorted((n for n in step.timeline if n.timestamp is not None), key=lambda n: n.timestamp, reverse=True)
    return dated + [n for n in step.timeline if n.timestamp is None]


def with_timeline_display_order(project: Project) -> Project:
    """Copy of the project with every step's timeline in display order."""
    ordered = project.model_copy(deep=True)
    for step in ordered.steps:
        step.timeline = timeline_display_order(step)
    return ordered
