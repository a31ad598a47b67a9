"""Project aggregate: steps, checklist items and notes."""

from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, AliasChoices, BeforeValidator, Field, field_validator, model_validator

from protracker.core.db import DocumentModel
from protracker.core.modules.project.migration import migrate_step_notes
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.errors import ValidationError
from protracker.utils import as_utc, new_id, now


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _assume_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


OptionalDate = Annotated[date | None, BeforeValidator(_blank_to_none)]
OptionalDatetime = Annotated[datetime | None, BeforeValidator(_blank_to_none), AfterValidator(_assume_utc)]
UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


class Priority(StrEnum):
    NORMAL = "normal"
    URGENT = "urgent"
    VERY_URGENT = "very-urgent"
    MOST_URGENT = "most-urgent"
    EXTREME = "extreme"


class PurchaseType(StrEnum):
    BUY = "buy"
    HIRE = "hire"
    RENT = "rent"


class ProcurementMethod(StrEnum):
    E_BIDDING = "e-bidding"
    SPECIFIC = "specific"
    SELECTION = "selection"


class ProjectStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


class NoteKind(StrEnum):
    """The two independent note collections of a step."""

    TIMELINE = "timeline"  # Chronological event log
    POSTIT = "postit"  # Unordered sticky notes


class SubNote(DocumentModel):
    """Free-text remark attached to a checklist item."""

    text: str
    timestamp: UtcDatetime = Field(default_factory=now)


class Note(DocumentModel):
    """Timeline entry or postit."""

    id: str = Field(default_factory=new_id)
    text: str
    timestamp: OptionalDatetime = Field(
        default_factory=now, validation_alias=AliasChoices("timestamp", "date", "createdAt")
    )


class ChecklistItem(DocumentModel):
    text: str
    checked: bool = False
    created_at: OptionalDatetime = None  # Absent on items written by old clients
    completed_at: OptionalDatetime = None
    completed_at_manual: bool = False  # Date was entered by hand and survives unchecking
    deadline: OptionalDate = None
    subnotes: list[SubNote] = Field(
        default_factory=list, validation_alias=AliasChoices("subnotes", "subNotes")
    )


class Step(DocumentModel):
    """One workflow step of a project.

    Legacy ``notes`` payloads are split into ``timeline`` and ``postits``
    whenever a step is loaded.
    """

    id: int | str
    title: str
    completed: bool = False
    completed_at: OptionalDatetime = None
    document_number: str | None = None  # Reference code entered when the step was completed
    checklist: list[ChecklistItem] = Field(default_factory=list)
    timeline: list[Note] = Field(default_factory=list)
    postits: list[Note] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_notes(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return migrate_step_notes(data)
        return data

    def notes(self, kind: NoteKind) -> list[Note]:
        return self.timeline if kind == NoteKind.TIMELINE else self.postits


class ProjectDetails(DocumentModel):
    """User-editable project fields."""

    name: str
    description: str = ""
    budget: float = Field(0, ge=0)
    contract_amount: float | None = Field(None, ge=0)
    deadline: OptionalDate = None
    priority: Priority = Priority.NORMAL
    purchase_type: PurchaseType = PurchaseType.BUY
    procurement_method: ProcurementMethod = ProcurementMethod.SPECIFIC


class Project(ProjectDetails):
    """Procurement case following a sequence of workflow steps."""

    id: str = Field(default_factory=new_id)
    status: ProjectStatus = ProjectStatus.ACTIVE
    current_step_index: int = Field(0, ge=0)  # First incomplete step, or the last step when all are done
    created_at: UtcDatetime = Field(default_factory=now)
    updated_at: OptionalDatetime = None
    revision: int = Field(0, ge=0)  # Incremented on every save, used for compare-and-set
    steps: list[Step] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Very old documents used a numeric timestamp
        return str(value) if isinstance(value, int) else value

    @property
    def completed_step_count(self) -> int:
        return sum(1 for step in self.steps if step.completed)

    @property
    def current_step(self) -> Step | None:
        if not self.steps:
            return None
        return self.steps[min(self.current_step_index, len(self.steps) - 1)]

    def with_details(self, details: ProjectDetails) -> "Project":
        """Copy of the project with its editable fields replaced."""
        if not details.name.strip():
            raise ValidationError("Project name cannot be empty")
        return self.model_copy(update=details.model_dump(), deep=True)


def create_project(details: ProjectDetails, template: list[StepTemplateEntry]) -> Project:
    """Build a new project whose steps are expanded from the template."""
    if not details.name.strip():
        raise ValidationError("Project name cannot be empty")
    if not template:
        raise ValidationError("Step template must contain at least one step")

    created_at = now()
    steps = [
        Step(
            id=entry.id,
            title=entry.title,
            checklist=[ChecklistItem(text=text, created_at=created_at) for text in entry.default_checklist],
        )
        for entry in template
    ]
    return Project(**details.model_dump(), created_at=created_at, steps=steps)
