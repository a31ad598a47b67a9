from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from protracker.app import App
from protracker.config import Config
from protracker.errors import UserError
from protracker.web.error_handlers import general_exception_handler, user_error_handler
from protracker.web.openapi import set_custom_openapi
from protracker.web.routers import (
    checklist_router,
    dashboard_router,
    notes_router,
    projects_router,
    settings_router,
    steps_router,
    workspace_router,
)


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(title="ProTracker API", lifespan=lifespan)

    app.add_middleware(SessionMiddleware, secret_key=config.session_secret_key)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(workspace_router, prefix="/api/v1")
    app.include_router(dashboard_router, prefix="/api/v1")
    app.include_router(projects_router, prefix="/api/v1")
    app.include_router(steps_router, prefix="/api/v1")
    app.include_router(checklist_router, prefix="/api/v1")
    app.include_router(notes_router, prefix="/api/v1")
    app.include_router(settings_router, prefix="/api/v1")

    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
