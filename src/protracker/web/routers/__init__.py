from protracker.web.routers.checklist import router as checklist_router
from protracker.web.routers.dashboard import router as dashboard_router
from protracker.web.routers.notes import router as notes_router
from protracker.web.routers.projects import router as projects_router
from protracker.web.routers.settings import router as settings_router
from protracker.web.routers.steps import router as steps_router
from protracker.web.routers.workspace import router as workspace_router

__all__ = [
    "checklist_router",
    "dashboard_router",
    "notes_router",
    "projects_router",
    "settings_router",
    "steps_router",
    "workspace_router",
]
