"""
Application error taxonomy

Every error raised by a service maps to one HTTP status and one stable
machine-readable code. The handlers registered in main.py render them as
{"error": <code>, "message": <text>}.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base class for errors that carry an error code"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "internal"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class InvalidArgumentError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "invalid_argument"
    default_message = "Invalid request"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthorized"
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"
    default_message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"
    default_message = "Resource conflict"


class InvalidTransitionError(AppError):
    status_code = 422
    error_code = "invalid_transition"
    default_message = "Status transition not allowed"


class RateLimitedError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "rate_limited"
    default_message = "Rate limit exceeded"


# Error codes for plain HTTPExceptions raised by FastAPI/Starlette themselves
STATUS_CODE_NAMES = {
    400: "invalid_argument",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "invalid_transition",
    429: "rate_limited",
    503: "unavailable",
}


def error_response(status_code: int, error: str, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc, AppError):
        code = exc.error_code
    else:
        code = STATUS_CODE_NAMES.get(exc.status_code, "internal" if exc.status_code >= 500 else "error")

    message = exc.detail
    if isinstance(message, dict):
        message = message.get("message", str(message))

    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} -> {exc.status_code}: {message}")
    return error_response(exc.status_code, code, str(message), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Render request validation failures as invalid_argument.

    A missing Authorization header surfaces as 401 rather than a validation error.
    """
    errors = exc.errors()
    for error in errors:
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return error_response(401, "unauthorized", "Not authenticated")

    logger.warning(f"Validation error for {request.url.path}: {errors}")
    parts = []
    for error in errors:
        loc = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return error_response(400, "invalid_argument", "; ".join(parts) or "Invalid request")


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"⚠️ Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return error_response(409, "conflict", "Resource conflicts with an existing record")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(500, "internal", "An unexpected error occurred")
