"""Application errors and the handlers that render them.

Every failure a caller can act on is an ``AppError`` subclass. Handlers turn
them, and FastAPI's own request validation errors, into one JSON body:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = {key: value for key, value in details.items() if value is not None}
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 422
    error_code = "VALIDATION_ERROR"
    default_message = "Request is malformed"


class UnauthorizedError(AppError):
    """No session, or one that expired or was revoked."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class ProfileMissingError(AppError):
    """Valid session whose user has no provisioned profile or role grant."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PROFILE_MISSING"
    default_message = "No profile is provisioned for this account"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "You are not allowed to do this"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    """Storage rejected a write because of a concurrent or duplicate row.

    Nothing in the application locks; this only reports what storage saw.
    """

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Conflicting update"


class TransientIOError(AppError):
    """Storage or transport timed out. Writes surface it so callers can retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "TRANSIENT_IO"
    default_message = "Storage is temporarily unavailable"


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or None},
    }


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "%s %s -> %s %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.error_code,
        exc.message,
        extra={"details": exc.details},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code, exc.message, exc.details),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationError(errors=jsonable_encoder(exc.errors()))
    return await app_exception_handler(request, error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(AppError.error_code, AppError.default_message),
    )


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Install the JSON error handlers.

    With ``debug`` set, unexpected exceptions are left to propagate so the
    traceback reaches the developer.
    """
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_handler  # type: ignore[arg-type]
    )
    if not debug:
        app.add_exception_handler(Exception, unhandled_exception_handler)
