from datetime import datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from protracker.core.modules.project.models import Project
from protracker.web.deps import AccessCodeDep, AppDep, RevisionQuery
from protracker.web.openapi import ErrorResponse

router = APIRouter(tags=["steps"])

STEP_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {"description": "Updated project"},
    400: {"model": ErrorResponse, "description": "Step index out of range"},
    404: {"model": ErrorResponse, "description": "Workspace or project not found"},
    409: {"model": ErrorResponse, "description": "Project changed since the given revision"},
}


class CompleteStepRequest(BaseModel):
    document_number: str | None = Field(None, description="Reference number of the document produced by the step")
    completed_at: datetime | None = Field(None, description="Completion time; defaults to now, may be backdated")


@router.post(
    "/projects/{project_id}/steps/{step_index}/complete",
    summary="Complete step",
    description="Mark a step complete. Steps can be completed in any order; the current step moves to the first open one.",
    operation_id="completeStep",
    responses=STEP_RESPONSES,
)
async def complete_step(
    project_id: str,
    step_index: int,
    body: CompleteStepRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.complete_step(code, project_id, step_index, body.document_number, body.completed_at, revision)


@router.post(
    "/projects/{project_id}/steps/{step_index}/revert",
    summary="Revert step",
    description="Mark a step incomplete again. Clears its completion date and document number.",
    operation_id="revertStep",
    responses=STEP_RESPONSES,
)
async def revert_step(
    project_id: str, step_index: int, app: AppDep, code: AccessCodeDep, revision: RevisionQuery = None
) -> Project:
    return await app.revert_step(code, project_id, step_index, revision)


@router.post(
    "/projects/{project_id}/steps/{step_index}/toggle",
    summary="Toggle step",
    description="Complete an open step or revert a completed one.",
    operation_id="toggleStep",
    responses=STEP_RESPONSES,
)
async def toggle_step(
    project_id: str,
    step_index: int,
    body: CompleteStepRequest,
    app: AppDep,
    code: AccessCodeDep,
    revision: RevisionQuery = None,
) -> Project:
    return await app.toggle_step(code, project_id, step_index, body.document_number, body.completed_at, revision)
