from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="ProTracker API",
            version="0.1.0",
            summary="Procurement project workflow tracker shared by access code",
            routes=app.routes,
        )

        components = openapi_schema.setdefault("components", {})
        components["securitySchemes"] = {
            "AccessCodeHeader": {
                "type": "apiKey",
                "in": "header",
                "name": "X-Access-Code",
                "description": "Workspace access code (preferred)",
            },
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": "session",
                "description": "Signed session remembering the code given to POST /workspace/open",
            },
        }

        openapi_schema["security"] = [
            {"AccessCodeHeader": []},
            {"SessionCookie": []},
        ]

        # Opening a workspace takes the code in the body
        public_endpoints = {
            ("POST", "/api/v1/workspace/open"),
            ("DELETE", "/api/v1/workspace/session"),
            ("GET", "/health"),
        }

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in public_endpoints:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Workspace 'abc' not found", "type": "not_found"},
                {"message": "Project 'Laptops' was changed by someone else", "type": "stale_overwrite"},
                {"message": "Access code required", "type": "access_code_missing"},
            ]
        }
    }
