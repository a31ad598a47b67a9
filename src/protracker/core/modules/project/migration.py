"""Forward migration of legacy step note shapes.

Older clients stored a single ``notes`` field per step, first as a plain
string and later as an untyped array mixing timeline entries and postits.
Current documents carry separate ``timeline`` and ``postits`` arrays whose
entries have an ``id``. Normalization runs every time a step is loaded and
is idempotent.
"""

from typing import Any
from uuid import UUID, uuid5

TIMELINE = "timeline"
POSTIT = "postit"

LEGACY_NOTE_NAMESPACE = UUID("6f1c2a4e-93b1-4d8e-9a57-0c3f5e2d7b18")


def legacy_note_id(kind: str, position: int, timestamp: Any, text: str) -> str:
    """Deterministic id for a note stored without one.

    The same legacy document always yields the same ids, so a note can be
    edited or deleted before the migrated step is ever saved back.
    """
    return uuid5(LEGACY_NOTE_NAMESPACE, f"{kind}|{position}|{timestamp}|{text}").hex


def _coerce_note(entry: Any) -> dict[str, Any] | None:
    if isinstance(entry, str):
        return {"text": entry}
    if isinstance(entry, dict):
        return dict(entry)
    return None


def _with_ids(entries: Any, kind: str) -> list[Any]:
    result = []
    for position, entry in enumerate(entries if isinstance(entries, list) else []):
        note = _coerce_note(entry)
        if note is None:
            # Already a typed note
            result.append(entry)
            continue
        note.pop("type", None)
        if not note.get("id"):
            if not any(key in note for key in ("timestamp", "date", "createdAt")):
                note["timestamp"] = None
            note["id"] = legacy_note_id(kind, position, note.get("timestamp"), str(note.get("text", "")))
        result.append(note)
    return result


def migrate_step_notes(step: dict[str, Any]) -> dict[str, Any]:
    """Split legacy ``notes`` into ``timeline`` and ``postits``.

    Returns a new dict; the input is not modified.
    """
    data = dict(step)
    notes = data.pop("notes", None)

    if isinstance(notes, str):
        # A bare string has no timestamp of its own; the completion time is the best anchor
        notes = [{"text": notes, "timestamp": data.get("completedAt")}] if notes.strip() else []
    elif not isinstance(notes, list):
        notes = []

    entries = [note for note in map(_coerce_note, notes) if note is not None]

    if data.get("timeline") is None:
        data["timeline"] = [n for n in entries if n.get("type") in (None, TIMELINE)]
    if data.get("postits") is None:
        data["postits"] = [n for n in entries if n.get("type") == POSTIT]

    data["timeline"] = _with_ids(data["timeline"], TIMELINE)
    data["postits"] = _with_ids(data["postits"], POSTIT)
    return data
