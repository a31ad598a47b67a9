from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from protracker.core.modules.workspace.models import Workspace
from protracker.web.deps import SESSION_ACCESS_CODE_KEY, AppDep
from protracker.web.openapi import ErrorResponse

router = APIRouter(tags=["workspace"])


class OpenWorkspaceRequest(BaseModel):
    """Access code naming the workspace."""

    access_code: str = Field(..., description="Shared access code; a new code creates an empty workspace")


class OpenWorkspaceResponse(BaseModel):
    created: bool = Field(..., description="True if the workspace did not exist before")
    workspace: Workspace


@router.post(
    "/workspace/open",
    summary="Open workspace",
    description=(
        "Open the workspace for an access code, creating it when the code is new. "
        "The code is remembered in the session cookie for later requests."
    ),
    operation_id="openWorkspace",
    responses={
        200: {"description": "Workspace opened"},
        400: {"model": ErrorResponse, "description": "Invalid access code"},
        503: {"model": ErrorResponse, "description": "Document store unavailable"},
    },
)
async def open_workspace(body: OpenWorkspaceRequest, app: AppDep, request: Request) -> OpenWorkspaceResponse:
    workspace, created = await app.open_workspace(body.access_code)
    request.session[SESSION_ACCESS_CODE_KEY] = body.access_code.strip()
    return OpenWorkspaceResponse(created=created, workspace=workspace)


@router.delete(
    "/workspace/session",
    summary="Leave workspace",
    description=(
        "Forget the access code stored in the session cookie. "
        "Live sync is shared with other clients of the workspace and stops on its own once unused."
    ),
    operation_id="closeWorkspace",
    status_code=204,
    responses={
        204: {"description": "Access code forgotten"},
    },
)
async def close_workspace(request: Request) -> None:
    request.session.pop(SESSION_ACCESS_CODE_KEY, None)
