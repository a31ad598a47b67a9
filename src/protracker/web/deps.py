from typing import Annotated, cast

from fastapi import Depends, Query, Request
from fastapi.security import APIKeyHeader

from protracker.app import App
from protracker.errors import AccessCodeMissingError

SESSION_ACCESS_CODE_KEY = "access_code"

access_code_scheme = APIKeyHeader(name="X-Access-Code", auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_access_code(
    request: Request,
    header_code: Annotated[str | None, Depends(access_code_scheme)] = None,
) -> str:
    """Access code from the X-Access-Code header, else from the session cookie."""
    if header_code and header_code.strip():
        return header_code.strip()

    session_code = request.session.get(SESSION_ACCESS_CODE_KEY)
    if session_code:
        return str(session_code)

    raise AccessCodeMissingError


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
AccessCodeDep = Annotated[str, Depends(get_access_code)]
RevisionQuery = Annotated[
    int | None,
    Query(ge=0, description="Revision the change is based on; the request fails with 409 if the project moved on"),
]
