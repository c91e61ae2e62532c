"""
Error taxonomy and global exception handlers.

Every handler answers with a ``{"message": ...}`` JSON body so clients see
one error shape, and no stack trace ever leaks to a response.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, headers: dict[str, str] | None = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = 401
    default_message = "No token, authorization denied."

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(AppError):
    status_code = 401
    default_message = "Token is not valid."

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class InvalidIdentifier(NotFound):
    """A malformed id, detected before the store is queried."""

    status_code = 400
    default_message = "Invalid Issue ID format."


class ValidationFailure(AppError):
    status_code = 400
    default_message = "Validation failed"


class DuplicateEmail(ValidationFailure):
    default_message = "User with this email already exists."


class TooManyRequests(AppError):
    status_code = 429
    default_message = "Rate limit exceeded"


class StorageFailure(AppError):
    status_code = 500
    default_message = "Internal database error"


class ExportFailure(StorageFailure):
    default_message = "Failed to generate CSV."


def _message(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationFailure.default_message
    first = errors[0]
    # drop the leading "body"/"query"/"path" segment
    loc = [str(part) for part in first.get("loc", ())[1:]]
    field = ".".join(loc)
    msg = str(first.get("msg", "invalid value"))
    return f"{field}: {msg}" if field else msg


async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message, exc_info=exc)
    return _message(exc.status_code, exc.message, exc.headers)


async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _message(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _message(400, _describe_validation_error(exc))


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return _message(409, "Database constraint violation")


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return _message(500, StorageFailure.default_message)


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _message(500, AppError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
