"""Typed errors raised by the portal core.

Every error carries a machine-readable kind and the HTTP status the API
answers with. Handlers return the message verbatim:

    {"success": false, "error": "Conflict", "message": "..."}
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PortalError(Exception):
    kind = "Internal"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind, "message": self.message}


class NotFound(PortalError):
    kind = "NotFound"
    status_code = 404


class ValidationError(PortalError):
    """Malformed input shape or format."""
    kind = "ValidationError"
    status_code = 400


class InvalidArgument(PortalError):
    """Well-formed but semantically wrong value."""
    kind = "InvalidArgument"
    status_code = 400


class Conflict(PortalError):
    kind = "Conflict"
    status_code = 409


class InvalidState(PortalError):
    """Operation not permitted for the entity's current status or date."""
    kind = "InvalidState"
    status_code = 409


class Unauthorized(PortalError):
    kind = "Unauthorized"
    status_code = 401


class Forbidden(PortalError):
    kind = "Forbidden"
    status_code = 403


class Internal(PortalError):
    kind = "Internal"
    status_code = 500


async def _portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=Internal("Internal server error").to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, _portal_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
