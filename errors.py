"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to the uniform ``{success: false, error, code}``
JSON body the presentation layer branches on.

Non-AppError exceptions are logged and surface as a generic 500 (with Sentry
reporting in production).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import ErrorResponse
from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        return ErrorResponse(
            error=self.message,
            code=self.error_code,
            field=self.field,
            details=self.details,
        ).model_dump(exclude_none=True)


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class UnverifiedError(AppError):
    status_code = 403
    error_code = "unverified"


class SuspendedError(AppError):
    status_code = 403
    error_code = "suspended"

    def __init__(self, until: datetime) -> None:
        super().__init__(
            f"Your account is suspended until {until.date().isoformat()}.",
            details={"suspended_until": until.isoformat()},
        )
        self.until = until


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class CodeExpiredError(AppError):
    status_code = 400
    error_code = "code_expired"


class CodeMismatchError(AppError):
    status_code = 400
    error_code = "code_mismatch"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class EmailDispatchError(AppError):
    status_code = 502
    error_code = "email_dispatch_failed"


class UnavailableError(AppError):
    status_code = 503
    error_code = "unavailable"

    def __init__(
        self, message: str = "Service temporarily unavailable. Please try again."
    ) -> None:
        super().__init__(message)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = [str(p) for p in first.get("loc", ()) if p != "body"]
        err = ValidationError(
            first.get("msg", "Invalid request"),
            field=".".join(loc) or None,
        )
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="An internal server error occurred.", code="internal_error"
            ).model_dump(exclude_none=True),
        )
