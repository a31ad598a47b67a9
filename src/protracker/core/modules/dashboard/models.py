from enum import StrEnum

from pydantic import Field

from protracker.core.db import DocumentModel
from protracker.core.modules.project.models import Project


class StatusFilter(StrEnum):
    """Project list filters offered by the dashboard cards."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    URGENT = "urgent"  # Not completed and due within URGENT_WINDOW_DAYS


class ProjectSummary(DocumentModel):
    """Project card: the project plus its derived progress."""

    project: Project
    progress_percent: int = Field(..., ge=0, le=100)
    current_step_title: str | None = None
    urgent: bool = False


class DashboardStats(DocumentModel):
    total: int = Field(..., ge=0)
    in_progress: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)
    urgent: int = Field(..., ge=0)
    recent: list[ProjectSummary] = Field(default_factory=list, description="Newest projects first")
