from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from protracker.core.modules.dashboard.models import ProjectSummary, StatusFilter
from protracker.core.modules.project.models import Project, ProjectDetails
from protracker.web.deps import AccessCodeDep, AppDep, RevisionQuery
from protracker.web.openapi import ErrorResponse

router: APIRouter = APIRouter(tags=["projects"])


class ImportProjectsRequest(BaseModel):
    """Projects exported from the old browser storage."""

    projects: list[dict[str, Any]] = Field(
        ...,
        description=(
            "Raw project objects. Legacy step notes (a single string or an untyped array) are "
            "migrated to timeline and post-it lists. Projects whose id already exists are skipped."
        ),
    )


@router.get(
    "/projects",
    summary="List projects",
    description="Projects newest first, with progress. Search matches name and description, case-insensitive.",
    operation_id="listProjects",
    responses={
        200: {"description": "Matching projects"},
        401: {"model": ErrorResponse, "description": "No access code given"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
    },
)
async def list_projects(
    app: AppDep,
    code: AccessCodeDep,
    q: Annotated[str, Query(description="Search text")] = "",
    status: Annotated[StatusFilter, Query(description="Status filter")] = StatusFilter.ALL,
) -> list[ProjectSummary]:
    return await app.list_projects(code, q, status)


@router.post(
    "/projects",
    summary="Create project",
    description="Create a project with steps expanded from the workspace template. It is placed first in the list.",
    operation_id="createProject",
    status_code=201,
    responses={
        201: {"description": "Project created"},
        400: {"model": ErrorResponse, "description": "Invalid project details"},
        401: {"model": ErrorResponse, "description": "No access code given"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
        502: {"model": ErrorResponse, "description": "Write failed"},
    },
)
async def create_project(details: ProjectDetails, app: AppDep, code: AccessCodeDep) -> Project:
    return await app.create_project(code, details)


@router.post(
    "/projects/import",
    summary="Import legacy projects",
    operation_id="importProjects",
    status_code=201,
    responses={
        201: {"description": "Imported projects"},
        400: {"model": ErrorResponse, "description": "A project could not be read"},
        401: {"model": ErrorResponse, "description": "No access code given"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
    },
)
async def import_projects(body: ImportProjectsRequest, app: AppDep, code: AccessCodeDep) -> list[Project]:
    return await app.import_legacy_projects(code, body.projects)


@router.get(
    "/projects/{project_id}",
    summary="Get project",
    description="One project. Each step's timeline is listed newest first, undated entries last.",
    operation_id="getProject",
    responses={
        200: {"description": "Project details"},
        401: {"model": ErrorResponse, "description": "No access code given"},
        404: {"model": ErrorResponse, "description": "Workspace or project not found"},
    },
)
async def get_project(project_id: str, app: AppDep, code: AccessCodeDep) -> Project:
    return await app.get_project(code, project_id)


@router.put(
    "/projects/{project_id}",
    summary="Update project details",
    description="Replace the editable fields of a project. Steps, status and progress are left as they are.",
    operation_id="updateProjectDetails",
    responses={
        200: {"description": "Project updated"},
        400: {"model": ErrorResponse, "description": "Invalid project details"},
        404: {"model": ErrorResponse, "description": "Workspace or project not found"},
        409: {"model": ErrorResponse, "description": "Project changed since the given revision"},
    },
)
async def update_project_details(
    project_id: str, details: ProjectDetails, app: AppDep, code: AccessCodeDep, revision: RevisionQuery = None
) -> Project:
    return await app.update_project_details(code, project_id, details, revision)


@router.delete(
    "/projects/{project_id}",
    summary="Delete project",
    operation_id="deleteProject",
    status_code=204,
    responses={
        204: {"description": "Project deleted"},
        404: {"model": ErrorResponse, "description": "Workspace or project not found"},
    },
)
async def delete_project(project_id: str, app: AppDep, code: AccessCodeDep) -> None:
    await app.delete_project(code, project_id)
