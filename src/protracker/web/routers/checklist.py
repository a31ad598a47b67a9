from datetime import date, datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from protracker.core.modules.project.models import Project
from protracker.web.deps import AccessCodeDep, AppDep, RevisionQuery
from protracker.web.openapi import ErrorResponse

router = APIRouter(tags=["checklist"])

CHECKLIST_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {"description": "Updated project"},
    400: {"model": ErrorResponse, "description": "Index out of range or empty text"},
    404: {"model": ErrorResponse, "description": "Workspace or project not found"},
    409: {"model": ErrorResponse, "description": "Project changed since the given revision"},
}


class AddChecklistItemRequest(BaseModel):
    text: str = Field(..., description="Item text")
    deadline: date | None = None


class UpdateChecklistItemRequest(BaseModel):
    """Partial update; only the fields sent are changed."""

    text: str | None = None
    checked: bool | None = None
    completed_at: datetime | None = Field(
        None, description="Completion date entered by hand; null clears it. Kept when the item is unchecked."
    )
    deadline: date | None = Field(None, description="Item deadline; null clears it")


class AddSubnoteRequest(BaseModel):
    text: str


@router.post(
    "/projects/{project_id}/steps/{step_index}/checklist",
    summary="Add checklist item",
    operation_id="addChecklistItem",
    responses=CHECKLIST_RESPONSES,
)
async def add_checklist_item(
    project_id: str,
    step_index: int,
    body: AddChecklistItemRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.add_checklist_item(code, project_id, step_index, body.text, body.deadline, revision)


@router.patch(
    "/projects/{project_id}/steps/{step_index}/checklist/{item_index}",
    summary="Update checklist item",
    description=(
        "Change text, checked state, completion date or deadline of an item. "
        "Checking stamps the completion date if none is set; unchecking clears a date that was not entered by hand."
    ),
    operation_id="updateChecklistItem",
    responses=CHECKLIST_RESPONSES,
)
async def update_checklist_item(
    project_id: str,
    step_index: int,
    item_index: int,
    body: UpdateChecklistItemRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    changes = body.model_dump(exclude_unset=True)
    if changes.get("text", "") is None:
        del changes["text"]
    if changes.get("checked", False) is None:
        del changes["checked"]
    return await app.update_checklist_item(code, project_id, step_index, item_index, changes, revision)


@router.delete(
    "/projects/{project_id}/steps/{step_index}/checklist/{item_index}",
    summary="Delete checklist item",
    operation_id="deleteChecklistItem",
    responses=CHECKLIST_RESPONSES,
)
async def delete_checklist_item(
    project_id: str, step_index: int, item_index: int, app: AppDep, code: AccessCodeDep, revision: RevisionQuery = None
) -> Project:
    return await app.delete_checklist_item(code, project_id, step_index, item_index, revision)


@router.post(
    "/projects/{project_id}/steps/{step_index}/checklist/{item_index}/subnotes",
    summary="Add checklist sub-note",
    operation_id="addChecklistSubnote",
    responses=CHECKLIST_RESPONSES,
)
async def add_checklist_subnote(
    project_id: str,
    step_index: int,
    item_index: int,
    body: AddSubnoteRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.add_checklist_subnote(code, project_id, step_index, item_index, body.text, revision)


@router.delete(
    "/projects/{project_id}/steps/{step_index}/checklist/{item_index}/subnotes/{subnote_index}",
    summary="Delete checklist sub-note",
    operation_id="deleteChecklistSubnote",
    responses=CHECKLIST_RESPONSES,
)
async def delete_checklist_subnote(
    project_id: str,
    step_index: int,
    item_index: int,
    subnote_index: int,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.delete_checklist_subnote(code, project_id, step_index, item_index, subnote_index, revision)
