"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

StoreError (raised by the repositories) is mapped by kind: unique-key
violations become 409, missing records 404, and connection trouble 503.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from repositories.errors import StoreError, StoreErrorKind
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
        payload: dict = {"success": False, "error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class InvalidCredentialsError(AuthenticationError):
    error_code = "invalid_credentials"


class TokenExpiredError(AuthenticationError):
    error_code = "token_expired"


class InvalidTokenError(AuthenticationError):
    error_code = "invalid_token"


class OtpExpiredError(AuthenticationError):
    error_code = "otp_expired"


class OtpInvalidError(AuthenticationError):
    error_code = "otp_invalid"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class OtpAttemptsExceededError(RateLimitError):
    error_code = "otp_attempts_exceeded"


class ServiceUnavailableError(AppError):
    status_code = 503
    error_code = "service_unavailable"


def app_error_from_store_error(exc: StoreError) -> AppError:
    """Translate a repository failure into the matching AppError."""
    if exc.kind is StoreErrorKind.UNIQUE_VIOLATION:
        return ConflictError("Resource already exists")
    if exc.kind is StoreErrorKind.NOT_FOUND:
        return NotFoundError("Resource not found")
    if exc.kind is StoreErrorKind.CONNECTION:
        return ServiceUnavailableError("Database temporarily unavailable")
    return AppError("Database operation failed")


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        error = ValidationError(
            first.get("msg", "Invalid request data"),
            field=".".join(loc) or None,
            details=[
                {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors
            ],
        )
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        log.error(
            "store_error",
            kind=exc.kind.value,
            operation=exc.operation,
            error=str(exc),
            path=request.url.path,
        )
        error = app_error_from_store_error(exc)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

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
            content={
                "success": False,
                "error": "An internal server error occurred.",
                "code": "internal_error",
            },
        )
