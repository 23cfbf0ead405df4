"""Error envelope for the profile API.

Every failure is rendered as ``{"error_code", "message", "details"}``.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import AppException, ErrorCode

logger = structlog.get_logger()


def error_response(status_code: int, error_code: str, message: str, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details},
    )


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the envelope renderers on ``app``."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        # Store failures are server faults; everything else is the caller's.
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "profile_request_rejected",
            error_code=exc.error_code.value,
            message=exc.message,
            status_code=exc.status_code,
        )
        return error_response(exc.status_code, exc.error_code.value, exc.message, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Unknown routes, wrong methods and similar routing errors."""
        return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed path, query or form parameters."""
        details = _field_errors(exc)
        logger.info("request_validation_error", errors=details)
        return error_response(
            422, ErrorCode.VALIDATION_ERROR.value, "Request validation failed", details
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unexpected faults; the caller only sees a generic message."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            request_id=request_id,
            exc_info=exc,
        )
        return error_response(
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"request_id": request_id},
        )
