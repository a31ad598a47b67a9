from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from protracker.core.modules.project.models import Project
from protracker.core.modules.template.models import StepTemplateEntry
from protracker.core.modules.workflow.propagation import PropagationResult
from protracker.web.deps import AccessCodeDep, AppDep, RevisionQuery
from protracker.web.openapi import ErrorResponse

router = APIRouter(tags=["settings"])

PropagateQuery = Annotated[
    bool, Query(description="Also reshape existing projects that have the same number of steps as the template")
]


class SaveTemplateRequest(BaseModel):
    steps: list[StepTemplateEntry] = Field(..., description="Ordered step template")


@router.get(
    "/settings/template",
    summary="Get step template",
    description="The workspace's custom template, or the built-in one when none is saved.",
    operation_id="getTemplate",
    responses={
        200: {"description": "Step template"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
    },
)
async def get_template(app: AppDep, code: AccessCodeDep) -> list[StepTemplateEntry]:
    return await app.get_template(code)


@router.put(
    "/settings/template",
    summary="Save step template",
    description=(
        "Save the step template. With propagation, each project with the same number of steps gets the new "
        "titles and checklists; checklist items with matching text keep their state. Projects with a different "
        "length are listed as skipped, projects changed concurrently as conflicted."
    ),
    operation_id="saveTemplate",
    responses={
        200: {"description": "Template saved"},
        400: {"model": ErrorResponse, "description": "Invalid template"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
    },
)
async def save_template(
    body: SaveTemplateRequest, app: AppDep, code: AccessCodeDep, propagate: PropagateQuery = True
) -> PropagationResult:
    return await app.save_template(code, body.steps, propagate)


@router.post(
    "/settings/template/reset",
    summary="Reset step template",
    description="Restore the built-in step template.",
    operation_id="resetTemplate",
    responses={
        200: {"description": "Template reset"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
    },
)
async def reset_template(app: AppDep, code: AccessCodeDep, propagate: PropagateQuery = True) -> PropagationResult:
    return await app.reset_template(code, propagate)


@router.post(
    "/projects/{project_id}/apply-template",
    summary="Apply template to project",
    description="Reshape one project to the current template, matching steps by id and then by position.",
    operation_id="applyTemplateToProject",
    responses={
        200: {"description": "Updated project"},
        404: {"model": ErrorResponse, "description": "Workspace or project not found"},
        409: {"model": ErrorResponse, "description": "Project changed since the given revision"},
    },
)
async def apply_template_to_project(
    project_id: str, app: AppDep, code: AccessCodeDep, revision: RevisionQuery = None
) -> Project:
    return await app.apply_template_to_project(code, project_id, revision)
