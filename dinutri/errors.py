# -*- coding: utf-8 -*-
"""
Error taxonomy shared by repositories and routes.

Repositories raise these; the handlers registered by `register_error_handlers`
turn them into JSON responses with the matching HTTP status.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AppError):
    """Malformed input."""

    status_code = 400
    default_detail = "Invalid data"


class AuthError(AppError):
    """Missing or invalid credentials."""

    status_code = 401
    default_detail = "Not authenticated"


class ForbiddenError(AppError):
    """Role/ownership mismatch or a disallowed state transition."""

    status_code = 403
    default_detail = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(AppError):
    """Uniqueness violation or a state that no longer allows the operation."""

    status_code = 409
    default_detail = "Conflict"


class DependencyError(AppError):
    """Deletion blocked by related records; `blockers` says which."""

    status_code = 409
    default_detail = "Deletion blocked by related records"

    def __init__(self, detail: Optional[str] = None, blockers: Optional[List[str]] = None) -> None:
        super().__init__(detail)
        self.blockers = list(blockers or [])


class InternalError(AppError):
    status_code = 500
    default_detail = "Internal server error"


def _redacted(message: str) -> str:
    return message if settings.is_development else InternalError.default_detail


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    detail = exc.detail
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.detail)
        detail = _redacted(exc.detail)
    content = {"detail": detail}
    if isinstance(exc, DependencyError):
        content["blockers"] = exc.blockers
    return JSONResponse(status_code=exc.status_code, content=content)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        errors.append({"field": loc, "message": err.get("msg", "")})
    return JSONResponse(status_code=400, content={"detail": "Invalid data", "errors": errors})


async def _integrity_error_handler(request: Request, exc: sqlite3.IntegrityError) -> JSONResponse:
    logger.info("Integrity violation on %s %s: %s", request.method, request.url.path, exc)
    detail = f"Conflict: {exc}" if settings.is_development else "Conflict"
    return JSONResponse(status_code=409, content={"detail": detail})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": _redacted(f"{type(exc).__name__}: {exc}")})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(sqlite3.IntegrityError, _integrity_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
