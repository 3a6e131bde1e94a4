"""
Central error handling for the leave approval service

Every error leaves the API in the same envelope:
{"error": true, "status_code": ..., "code": ..., "detail": ..., "path": ...}
"""
import logging
import traceback
from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

from leave_approval.core.config import settings
from leave_approval.core.exceptions import LeaveError

logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    detail: Any,
    headers: Optional[dict] = None,
    **extra: Any,
) -> JSONResponse:
    content = {
        "error": True,
        "status_code": status_code,
        "code": code,
        "detail": detail,
        "path": str(request.url.path),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def leave_error_handler(request: Request, exc: LeaveError) -> JSONResponse:
    """
    Render a domain error with its own status code and stable code

    Args:
        request: FastAPI request object
        exc: LeaveError instance

    Returns:
        JSONResponse with error details
    """
    if exc.status_code >= 500:
        logger.error("Leave engine error on %s: %s", request.url.path, exc.detail)
    return _error_response(request, exc.status_code, exc.code, exc.detail)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Auth and routing errors raised as plain HTTPException"""
    return _error_response(
        request,
        exc.status_code,
        "HTTP_ERROR",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Malformed request bodies and query parameters.

    Field-level errors are omitted in production.
    """
    if settings.APP_ENV == "prod":
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "REQUEST_VALIDATION_ERROR",
            "Validation error: Invalid request data",
        )

    # ctx may hold exception instances, which are not JSON serializable
    errors = []
    for e in exc.errors():
        err = dict(e)
        if isinstance(err.get("ctx"), dict):
            err["ctx"] = {
                k: (v if isinstance(v, (str, int, float, bool, type(None))) else str(v))
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "REQUEST_VALIDATION_ERROR",
        "Validation error",
        errors=errors,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Anything unexpected becomes a 500.

    Production hides the message; local runs also get the traceback.
    """
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=exc)

    if settings.APP_ENV == "prod":
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "Internal server error",
        )

    trace = None
    if settings.APP_ENV == "local":
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        str(exc),
        traceback=trace,
    )
