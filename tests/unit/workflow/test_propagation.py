"""Tests for retrofitting templates onto existing projects."""

from protracker.core.modules.project.models import ChecklistItem, Project, ProjectStatus
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.core.modules.workflow.checklist import set_item_checked
from protracker.core.modules.workflow.engine import complete_step
from protracker.core.modules.workflow.propagation import (
    apply_template_globally,
    apply_template_to_project,
    rebuild_checklist,
)


class TestRebuildChecklist:
    def test_matching_text_keeps_checked_state(self):
        old = [ChecklistItem(text="A", checked=True), ChecklistItem(text="B", checked=False)]
        result = rebuild_checklist(old, ["A", "C"])
        assert [(i.text, i.checked) for i in result] == [("A", True), ("C", False)]

    def test_duplicate_texts_reuse_each_item_once(self):
        old = [ChecklistItem(text="A", checked=True), ChecklistItem(text="A", checked=False)]
        result = rebuild_checklist(old, ["A", "A", "A"])
        assert [i.checked for i in result] == [True, False, False]

    def test_kept_item_retains_dates_and_subnotes(self):
        old = [ChecklistItem.model_validate({"text": "A", "checked": True, "subnotes": [{"text": "n"}]})]
        result = rebuild_checklist(old, ["A"])
        assert result[0].subnotes[0].text == "n"


class TestApplyTemplateGlobally:
    def test_same_length_projects_rewritten(self, checklist_project):
        project = set_item_checked(checklist_project, 0, 0, True)
        template = [
            StepTemplateEntry(id=1, title="Survey needs", default_checklist=["A", "C"]),
            StepTemplateEntry(id=2, title="Approve", default_checklist=["Sign"]),
        ]

        result = apply_template_globally([project], template)

        assert result.skipped_ids == []
        updated = result.projects[0]
        assert updated.steps[0].title == "Survey needs"
        assert [(i.text, i.checked) for i in updated.steps[0].checklist] == [("A", True), ("C", False)]
        assert project.steps[0].title == "Survey"

    def test_different_length_projects_skipped(self, project, checklist_project):
        template = [StepTemplateEntry(id=1, title="Only", default_checklist=[]), StepTemplateEntry(id=2, title="Two")]
        result = apply_template_globally([project, checklist_project], template)
        assert result.skipped_ids == [project.id]
        assert [p.id for p in result.projects] == [checklist_project.id]

    def test_step_completion_untouched(self, checklist_project):
        project = complete_step(checklist_project, 0)
        template = [StepTemplateEntry(id=1, title="X"), StepTemplateEntry(id=2, title="Y")]
        updated = apply_template_globally([project], template).projects[0]
        assert updated.steps[0].completed
        assert updated.current_step_index == 1


class TestApplyTemplateToProject:
    def test_matches_steps_by_id_before_position(self, project):
        project = complete_step(project, 2)  # S3, id 3
        template = [
            StepTemplateEntry(id=3, title="Third first"),
            StepTemplateEntry(id=1, title="First second"),
        ]
        updated = apply_template_to_project(project, template)

        assert [s.title for s in updated.steps] == ["Third first", "First second"]
        assert updated.steps[0].completed
        assert not updated.steps[1].completed
        assert updated.current_step_index == 1

    def test_unknown_ids_fall_back_to_position_then_new_step(self, project):
        project = complete_step(project, 0)
        template = [
            StepTemplateEntry(id="a", title="A"),
            StepTemplateEntry(id="b", title="B"),
            StepTemplateEntry(id="c", title="C"),
            StepTemplateEntry(id="d", title="D", default_checklist=["new item"]),
        ]
        updated = apply_template_to_project(project, template)

        assert [s.id for s in updated.steps] == ["a", "b", "c", "d"]
        assert updated.steps[0].completed
        assert [i.text for i in updated.steps[3].checklist] == ["new item"]
        assert updated.current_step_index == 1

    def test_shrinking_completed_project_keeps_invariants(self):
        project = Project.model_validate(
            {
                "name": "Done",
                "steps": [{"id": i, "title": f"S{i}", "completed": True} for i in range(1, 5)],
            }
        )
        project = complete_step(project, 3)
        updated = apply_template_to_project(project, [StepTemplateEntry(id=1, title="S1")])
        assert len(updated.steps) == 1
        assert updated.current_step_index == 0
        assert updated.status == ProjectStatus.COMPLETED
