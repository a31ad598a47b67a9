from fastapi import APIRouter

from protracker.core.modules.dashboard.models import DashboardStats
from protracker.web.deps import AccessCodeDep, AppDep
from protracker.web.openapi import ErrorResponse

router = APIRouter(tags=["dashboard"])


@router.get(
    "/dashboard",
    summary="Dashboard statistics",
    description=(
        "Project counts for the workspace: total, in progress, completed and urgent "
        "(open with a deadline in the next 7 days), plus the five newest projects."
    ),
    operation_id="getDashboard",
    responses={
        200: {"description": "Dashboard statistics"},
        401: {"model": ErrorResponse, "description": "No access code given"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
    },
)
async def get_dashboard(app: AppDep, code: AccessCodeDep) -> DashboardStats:
    return await app.get_dashboard(code)
