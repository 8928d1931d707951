"""
Translation of service exceptions into HTTP responses.
"""
from fastapi import HTTPException
from fastapi.responses import JSONResponse

from ..exceptions import (
    ConflictError,
    FrameworkServiceError,
    FrameworkValidationError,
    LastFrameworkError,
    MalformedInputError,
    NotFoundError,
    ScopeMismatchError,
)

STATUS_CODES = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (FrameworkValidationError, 400),
    (MalformedInputError, 400),
    (ScopeMismatchError, 400),
    (LastFrameworkError, 400),
)


def status_code_for(exc: FrameworkServiceError) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


def http_error(exc: FrameworkServiceError) -> HTTPException:
    return HTTPException(status_code=status_code_for(exc), detail=exc.message)


def import_failure(exc: FrameworkServiceError) -> JSONResponse:
    """Import routes answer with `{success: false, message, errors?}` instead of `detail`."""
    content = {"success": False, "message": exc.message}
    if isinstance(exc, FrameworkValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=status_code_for(exc), content=content)


def import_database_failure(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "message": f"Import failed: {exc}"})
