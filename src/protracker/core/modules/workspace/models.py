"""Workspace root document."""

from datetime import datetime

from pydantic import Field

from protracker.core.db import DocumentModel
from protracker.core.modules.project.models import Project
from protracker.core.modules.template.models import StepTemplateEntry, default_template


class Workspace(DocumentModel):
    """Everything stored under one access code.

    Projects are kept newest first. ``custom_steps`` overrides the built-in
    step template when set.
    """

    projects: list[Project] = Field(default_factory=list)
    custom_steps: list[StepTemplateEntry] | None = None
    last_accessed_at: datetime | None = None
    last_updated_at: datetime | None = None

    @property
    def template(self) -> list[StepTemplateEntry]:
        """Effective step template for new projects."""
        if self.custom_steps:
            return [entry.model_copy(deep=True) for entry in self.custom_steps]
        return default_template()

    def get_project(self, project_id: str) -> Project | None:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None
