"""Tests for legacy step note migration."""

from protracker.core.modules.project.migration import legacy_note_id, migrate_step_notes
from protracker.core.modules.project.models import Step


def _step(**fields):
    return {"id": 1, "title": "Survey", **fields}


class TestStringNotes:
    """Notes stored as one free-text string."""

    def test_string_becomes_single_timeline_entry(self):
        data = migrate_step_notes(_step(notes="Waiting for quotes", completedAt="2024-02-01T10:00:00Z"))

        assert "notes" not in data
        assert len(data["timeline"]) == 1
        assert data["timeline"][0]["text"] == "Waiting for quotes"
        assert data["timeline"][0]["timestamp"] == "2024-02-01T10:00:00Z"
        assert data["timeline"][0]["id"]
        assert data["postits"] == []

    def test_blank_string_gives_empty_lists(self):
        data = migrate_step_notes(_step(notes="   "))
        assert data["timeline"] == []
        assert data["postits"] == []

    def test_input_is_not_modified(self):
        raw = _step(notes="Keep me")
        migrate_step_notes(raw)
        assert raw == _step(notes="Keep me")


class TestArrayNotes:
    """Notes stored as one untyped array."""

    def test_mixed_array_is_split_by_type(self):
        data = migrate_step_notes(
            _step(
                notes=[
                    {"text": "Sent TOR", "timestamp": "2024-01-01T00:00:00Z"},
                    {"text": "Call finance", "type": "postit"},
                    {"text": "TOR approved", "type": "timeline"},
                    "plain string entry",
                ]
            )
        )

        assert [n["text"] for n in data["timeline"]] == ["Sent TOR", "TOR approved", "plain string entry"]
        assert [n["text"] for n in data["postits"]] == ["Call finance"]
        assert all("type" not in n for n in data["timeline"] + data["postits"])

    def test_existing_split_arrays_win_over_legacy_notes(self):
        data = migrate_step_notes(
            _step(notes="old text", timeline=[{"id": "t1", "text": "kept"}], postits=[{"id": "p1", "text": "kept"}])
        )
        assert data["timeline"] == [{"id": "t1", "text": "kept"}]
        assert data["postits"] == [{"id": "p1", "text": "kept"}]

    def test_missing_postits_derived_even_when_timeline_present(self):
        data = migrate_step_notes(_step(timeline=[{"id": "t1", "text": "kept"}], notes=[{"text": "x", "type": "postit"}]))
        assert [n["text"] for n in data["postits"]] == ["x"]

    def test_non_list_notes_ignored(self):
        data = migrate_step_notes(_step(notes=42))
        assert data["timeline"] == []
        assert data["postits"] == []


class TestIdempotence:
    def test_migrating_twice_gives_identical_notes(self):
        raw = _step(notes=[{"text": "a", "timestamp": "2024-01-01T00:00:00Z"}, {"text": "b", "type": "postit"}])
        once = migrate_step_notes(raw)
        twice = migrate_step_notes(once)
        assert twice["timeline"] == once["timeline"]
        assert twice["postits"] == once["postits"]

    def test_loading_same_legacy_step_gives_same_ids(self):
        raw = _step(notes="Waiting for quotes")
        first = Step.model_validate(raw)
        second = Step.model_validate(raw)
        assert first.timeline[0].id == second.timeline[0].id

    def test_loaded_step_survives_document_round_trip(self):
        step = Step.model_validate(_step(notes=[{"text": "a"}, {"text": "b", "type": "postit"}]))
        reloaded = Step.model_validate(step.to_document())
        assert reloaded == step

    def test_legacy_id_depends_on_content(self):
        assert legacy_note_id("timeline", 0, None, "a") != legacy_note_id("timeline", 0, None, "b")
        assert legacy_note_id("timeline", 0, None, "a") != legacy_note_id("postit", 0, None, "a")
