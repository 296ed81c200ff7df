"""
Error hierarchy and FastAPI exception handlers.

Every failure is rendered in the same envelope as successful responses:
``{"success": false, "message": ..., "errors": [...]}``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base error for anything the API reports to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error."

    def __init__(self, message: str | None = None, errors: Optional[list[str]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_response(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed."


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized."


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden."


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class CommunityNotFound(NotFound):
    """The church id does not resolve to a stored community."""

    def __init__(self, church_id: str):
        self.church_id = church_id
        super().__init__(f"Church {church_id} not found.")


class StoreUnavailable(ApiError):
    """The backing store could not be reached or the call failed."""

    default_message = "Server error: database connection not available."


def register_error_handlers(app: FastAPI) -> None:
    """Register the envelope-producing handlers on the app."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(level, "%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        error = ValidationError(errors=_format_validation_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_response())

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ApiError().to_response(),
        )


def _format_validation_errors(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        # Drop the leading "body"/"query" segment so messages name the field.
        loc = [str(part) for part in err.get("loc", ())[1:]]
        field = ".".join(loc) or "request"
        messages.append(f"{field}: {err.get('msg', 'invalid value')}")
    return messages
