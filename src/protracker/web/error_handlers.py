import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from protracker.errors import (
    AccessCodeMissingError,
    NotFoundError,
    StaleOverwriteError,
    TransportUnavailableError,
    ValidationError,
    WriteError,
)

logger = structlog.get_logger(__name__)

# Checked in order, first match wins
_STATUS_BY_ERROR: list[tuple[type[Exception], int, str]] = [
    (AccessCodeMissingError, 401, "access_code_missing"),
    (NotFoundError, 404, "not_found"),
    (ValidationError, 400, "validation_error"),
    (StaleOverwriteError, 409, "stale_overwrite"),
    (TransportUnavailableError, 503, "transport_unavailable"),
    (WriteError, 502, "write_error"),
]


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    status_code, error_type = 400, "bad_request"
    for error_class, code, name in _STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            status_code, error_type = code, name
            break

    response = create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)
    if isinstance(exc, WriteError):
        response.headers["X-Write-Error-Code"] = exc.code
    return response


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("unexpected_error", error=str(exc))
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
