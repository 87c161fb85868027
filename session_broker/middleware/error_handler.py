"""Error handling middleware."""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

from session_broker.core.exceptions import SessionError, ValidationError

logger = get_logger(__name__)


def envelope(message: str, **extra: Any) -> dict[str, Any]:
    """Failure body shared by every error response."""
    return {"success": False, "message": message, "data": None, **extra}


def error_response(error: SessionError, context: str | None = None) -> JSONResponse:
    """
    Render a session error.

    Args:
        error: Tagged session error
        context: Operation the error came from (e.g. ``signin``)

    Returns:
        JSON error response with the error's status code
    """
    extra: dict[str, Any] = {}
    if context:
        extra["context"] = context
    if isinstance(error, ValidationError) and error.errors:
        extra["errors"] = error.errors

    return JSONResponse(
        status_code=error.status_code,
        content=envelope(error.message, **extra),
    )


async def session_error_handler(request: Request, exc: SessionError) -> JSONResponse:
    """Handle session errors raised outside a lifecycle operation."""
    return error_response(exc)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions, including authentication gate rejections.

    Args:
        request: Request object
        exc: HTTP exception

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle request bodies FastAPI could not parse.

    Returns:
        400 JSON error response with per-field details
    """
    errors = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
            "code": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=envelope("Invalid input", errors=errors),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Returns:
        500 JSON error response; details stay in the logs
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=exc.__class__.__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=envelope("An unexpected error occurred"),
    )
