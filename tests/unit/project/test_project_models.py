"""Tests for project construction and the stored document shape."""

from datetime import UTC, date

import pytest

from protracker.core.modules.project.models import (
    Note,
    Priority,
    Project,
    ProjectDetails,
    ProjectStatus,
    create_project,
)
from protracker.core.modules.template.models import default_template
from protracker.errors import ValidationError


class TestCreateProject:
    """Tests for building a project from a step template."""

    def test_steps_follow_template(self, details, checklist_template):
        """Test that each template entry becomes one step with unchecked items."""
        project = create_project(details, checklist_template)

        assert [step.title for step in project.steps] == ["Survey", "Approve"]
        assert [step.id for step in project.steps] == [1, 2]
        assert [item.text for item in project.steps[0].checklist] == ["A", "B"]
        assert all(not item.checked for item in project.steps[0].checklist)
        assert all(item.created_at == project.created_at for item in project.steps[0].checklist)

    def test_new_project_starts_active_at_first_step(self, project):
        assert project.status == ProjectStatus.ACTIVE
        assert project.current_step_index == 0
        assert project.revision == 0
        assert project.completed_step_count == 0
        assert project.current_step is not None
        assert project.current_step.title == "S1"

    def test_ids_are_unique(self, details, three_step_template):
        ids = {create_project(details, three_step_template).id for _ in range(50)}
        assert len(ids) == 50

    def test_default_template_has_seven_steps(self, details):
        project = create_project(details, default_template())
        assert len(project.steps) == 7
        assert all(step.checklist for step in project.steps)

    def test_empty_name_rejected(self, three_step_template):
        with pytest.raises(ValidationError, match="name cannot be empty"):
            create_project(ProjectDetails(name="   "), three_step_template)

    def test_empty_template_rejected(self, details):
        with pytest.raises(ValidationError, match="at least one step"):
            create_project(details, [])


class TestProjectDocument:
    """Tests for the camelCase document shape and tolerant loading."""

    def test_document_uses_camel_case_keys(self, project):
        doc = project.to_document()
        assert "currentStepIndex" in doc
        assert "purchaseType" in doc
        assert "procurementMethod" in doc
        assert "documentNumber" in doc["steps"][0]
        assert "current_step_index" not in doc

    def test_document_round_trip_keeps_values(self, project):
        loaded = Project.from_document(project.to_document())
        assert loaded == project

    def test_numeric_legacy_id_becomes_string(self):
        project = Project.model_validate({"id": 1712345678901, "name": "Old", "steps": []})
        assert project.id == "1712345678901"

    def test_blank_dates_load_as_none(self):
        project = Project.model_validate({"name": "Old", "deadline": "", "updatedAt": " ", "steps": []})
        assert project.deadline is None
        assert project.updated_at is None

    def test_priority_values(self):
        project = Project.model_validate({"name": "Urgent job", "priority": "most-urgent", "deadline": "2025-03-01"})
        assert project.priority == Priority.MOST_URGENT
        assert project.deadline == date(2025, 3, 1)

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            ProjectDetails(name="Bad", budget=-1)

    def test_naive_timestamp_is_read_as_utc(self):
        note = Note.model_validate({"id": "n1", "text": "Called vendor", "timestamp": "2024-05-01T09:30:00"})
        assert note.timestamp is not None
        assert note.timestamp.tzinfo == UTC

    def test_note_accepts_legacy_date_key(self):
        note = Note.model_validate({"id": "n1", "text": "Called vendor", "date": "2024-05-01T09:30:00Z"})
        assert note.timestamp is not None
        assert note.timestamp.day == 1


class TestWithDetails:
    def test_replaces_editable_fields_only(self, project):
        project = project.model_copy(update={"revision": 4})
        updated = project.with_details(ProjectDetails(name="Desktops", budget=10, priority=Priority.URGENT))

        assert updated.name == "Desktops"
        assert updated.budget == 10
        assert updated.priority == Priority.URGENT
        assert updated.id == project.id
        assert updated.revision == 4
        assert updated.steps == project.steps
        assert project.name == "Office laptops"

    def test_empty_name_rejected(self, project):
        with pytest.raises(ValidationError):
            project.with_details(ProjectDetails(name=""))
