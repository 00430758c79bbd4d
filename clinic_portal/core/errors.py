# clinic_portal/core/errors.py
"""
Error taxonomy for reservation and lifecycle operations, plus helpers to
translate storage faults and render errors over HTTP.
"""
from __future__ import annotations

import functools
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from clinic_portal.core.logging import get_logger

logger = get_logger(__name__)


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BookingError(Exception):
    """Base class for every failure the booking core reports to callers."""

    code = "booking_error"
    status_code = 400

    def __init__(self, message: str = "", **context: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context


class InvalidRequest(BookingError):
    code = "invalid_request"
    status_code = 400


class Unauthorized(BookingError):
    code = "unauthorized"
    status_code = 401


class Forbidden(BookingError):
    code = "forbidden"
    status_code = 403


class NotFound(BookingError):
    code = "not_found"
    status_code = 404


class SlotUnavailable(BookingError):
    """The atomic claim matched no row: taken already, or never bookable."""

    code = "slot_unavailable"
    status_code = 409


class InvalidTransition(BookingError):
    code = "invalid_transition"
    status_code = 409


class AlreadyRated(BookingError):
    code = "already_rated"
    status_code = 409


class InconsistentState(BookingError):
    """A slot is held as booked but its business records could not be written."""

    code = "inconsistent_state"
    status_code = 500


class StorageUnavailable(BookingError):
    code = "storage_unavailable"
    status_code = 503


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: ErrorSeverity = ErrorSeverity.MEDIUM) -> None:
    """Record an error with its context at a level matching its severity."""
    payload = dict(context or {})
    payload.update(error=str(error), error_type=type(error).__name__, severity=severity.value)
    if severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
        logger.error("error_recorded", **payload)
    else:
        logger.warning("error_recorded", **payload)


def is_storage_fault(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def translate_storage_errors(func):
    """Turn unreachable-store failures raised by an async service call into StorageUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DBAPIError as e:
            if not is_storage_fault(e):
                raise
            log_error(e, {"operation": func.__name__}, ErrorSeverity.HIGH)
            raise StorageUnavailable("The appointment store is unavailable, please retry") from e

    return wrapper


def create_error_response(code: str, detail: str) -> dict:
    return {
        "success": False,
        "error": code,
        "detail": detail,
    }


def create_success_response(data: Any) -> dict:
    return {
        "success": True,
        "data": data,
    }


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        log_error(exc, {"endpoint": request.url.path, **exc.context}, ErrorSeverity.HIGH)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.code, exc.message),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{where}: {first.get('msg', 'invalid value')}" if where else first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=InvalidRequest.status_code,
        content=create_error_response(InvalidRequest.code, detail),
    )
