"""Unified error handling — ServiceError + RequestValidationError → JSON."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from repopolisher.services import (
    ConflictError,
    MissingRemoteError,
    NoFixableIssuesError,
    NoFixesAppliedError,
    NotFoundError,
    RepositoryStateError,
    ServiceError,
    ToolExecutionError,
    ToolNotInstalledError,
    ValidationError,
)

_STATUS_MAP: dict[type[ServiceError], int] = {
    NotFoundError: 404,
    ConflictError: 409,
    ValidationError: 422,
    MissingRemoteError: 422,
    NoFixableIssuesError: 422,
    NoFixesAppliedError: 422,
    ToolNotInstalledError: 503,
    ToolExecutionError: 502,
    RepositoryStateError: 502,
}


def status_for(exc: ServiceError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            return _STATUS_MAP[cls]
    return 500


async def _service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    content: dict = {"detail": str(exc)}
    if exc.warnings:
        content["warnings"] = exc.warnings
    return JSONResponse(status_code=status_for(exc), content=content)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(status_code=422, content={"detail": "; ".join(messages)})


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
