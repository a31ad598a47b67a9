from datetime import datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from protracker.core.modules.project.models import NoteKind, Project
from protracker.web.deps import AccessCodeDep, AppDep, RevisionQuery
from protracker.web.openapi import ErrorResponse

router: APIRouter = APIRouter(tags=["notes"])

NOTE_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {"description": "Updated project"},
    400: {"model": ErrorResponse, "description": "Step index out of range or empty text"},
    404: {"model": ErrorResponse, "description": "Workspace, project or note not found"},
    409: {"model": ErrorResponse, "description": "Project changed since the given revision"},
}


class AddNoteRequest(BaseModel):
    text: str = Field(..., description="Note text")
    timestamp: datetime | None = Field(None, description="Defaults to now; timeline entries may be backdated")


class EditNoteRequest(BaseModel):
    text: str


@router.post(
    "/projects/{project_id}/steps/{step_index}/notes/{kind}",
    summary="Add note",
    description="Add a timeline entry or a post-it to a step.",
    operation_id="addNote",
    responses=NOTE_RESPONSES,
)
async def add_note(
    project_id: str,
    step_index: int,
    kind: NoteKind,
    body: AddNoteRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.add_note(code, project_id, step_index, kind, body.text, body.timestamp, revision)


@router.patch(
    "/projects/{project_id}/steps/{step_index}/notes/{kind}/{note_id}",
    summary="Edit note",
    operation_id="editNote",
    responses=NOTE_RESPONSES,
)
async def edit_note(
    project_id: str,
    step_index: int,
    kind: NoteKind,
    note_id: str,
    body: EditNoteRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.edit_note(code, project_id, step_index, kind, note_id, body.text, revision)


@router.delete(
    "/projects/{project_id}/steps/{step_index}/notes/{kind}/{note_id}",
    summary="Delete note",
    operation_id="deleteNote",
    responses=NOTE_RESPONSES,
)
async def delete_note(
    project_id: str,
    step_index: int,
    kind: NoteKind,
    note_id: str,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.delete_note(code, project_id, step_index, kind, note_id, revision)
