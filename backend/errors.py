"""Error taxonomy shared by every pipeline, and its JSON rendering.

Pipelines raise these; the handlers registered in ``main`` turn them into
``{"success": false, "error": ...}`` responses with the matching status code.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIMEOUT_MESSAGE = "Database query timed out. Please try again."


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, details: str | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed request field."""

    status_code = 400


class AuthError(AppError):
    """Missing, invalid, or inactive credential."""

    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class QueryTimeoutError(AppError):
    """An external call exceeded its deadline."""

    status_code = 408

    def __init__(self, message: str = TIMEOUT_MESSAGE, details: str | None = None):
        super().__init__(message, details=details)


class UnprocessableError(AppError):
    """Record exists but a required field is empty or corrupt."""

    status_code = 422


class StoreError(AppError):
    """Database failure not otherwise classified."""

    status_code = 500

    def __init__(
        self,
        message: str,
        suggestions: list[str] | None = None,
        details: str | None = None,
    ):
        super().__init__(message, details=details)
        self.suggestions = suggestions


class UpstreamError(AppError):
    """Language-model API failure."""

    status_code = 500


async def with_timeout(awaitable: Awaitable[T], seconds: float | None = None) -> T:
    """Await ``awaitable`` but give up after ``seconds``.

    The pending operation is cancelled, not left running in the background.

    Raises:
        QueryTimeoutError: If the deadline passes first.
    """
    timeout = settings.query_timeout_seconds if seconds is None else seconds
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Store query exceeded %.1fs deadline", timeout)
        raise QueryTimeoutError() from exc


def error_body(message: str, **extra) -> dict:
    body = {"success": False, "error": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    extra = {}
    if getattr(exc, "suggestions", None):
        extra["suggestions"] = exc.suggestions
    if settings.debug and exc.details:
        extra["details"] = exc.details
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, **extra))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Body did not parse or a parameter had the wrong type
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        message = "Invalid JSON in request body"
    else:
        message = "Invalid request"
    extra = {"details": str(errors)} if settings.debug else {}
    return JSONResponse(status_code=400, content=error_body(message, **extra))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
