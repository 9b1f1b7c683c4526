"""Error Handlers - map palette failures onto HTTP responses.

Invariants:
    - PaletteError -> its own REST envelope and status; the palette session id is
      filled into the context when the route carries one
    - Rate-limited upstream errors carry a Retry-After header (seconds, rounded up)
    - Malformed request bodies -> 400 with one detail per offending field
    - Anything else -> 500 without internal details

Design Decisions:
    - Log level follows ErrorSeverity, not the status code: a 503 from a degraded
      history store is a warning, a 500 from a bug is critical
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from palette.core.errors import ErrorSeverity, PaletteError

logger = logging.getLogger(__name__)

_SEVERITY_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}
# Request locations FastAPI prefixes onto field paths.
_LOCATIONS = ("body", "query", "path", "header")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PaletteError, palette_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


def _session_id(request: Request) -> str | None:
    return request.path_params.get("session_id")


async def palette_error_handler(request: Request, exc: PaletteError) -> JSONResponse:
    if exc.context.session_id is None:
        exc.context.session_id = _session_id(request)
    logger.log(
        _SEVERITY_LEVELS.get(exc.severity, logging.ERROR),
        "%s %s failed: %s", request.method, request.url.path, exc.message,
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "session_id": exc.context.session_id,
        },
    )
    headers = None
    if exc.context.retry_after_ms is not None:
        headers = {"Retry-After": str(math.ceil(exc.context.retry_after_ms / 1000))}
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [_field_detail(e) for e in exc.errors()]
    logger.warning(
        "Rejected %s %s: %s", request.method, request.url.path,
        ", ".join(d["field"] or d["location"] for d in details),
        extra={
            "error_code": "VALIDATION_ERROR",
            "path": request.url.path,
            "session_id": _session_id(request),
        },
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": "validation",
                "severity": ErrorSeverity.ERROR.value,
                "details": details,
            },
        },
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.critical(
        "Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path,
        extra={
            "error_code": "INTERNAL_ERROR",
            "path": request.url.path,
            "session_id": _session_id(request),
        },
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": "internal",
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )


def _field_detail(error: dict) -> dict:
    """`("body", "filters", "type")` -> location "body", field "filters.type"."""
    loc = [str(part) for part in error.get("loc", ())]
    location = loc.pop(0) if loc and loc[0] in _LOCATIONS else "body"
    return {
        "location": location,
        "field": ".".join(loc),
        "message": error.get("msg", ""),
        "type": error.get("type", ""),
    }
