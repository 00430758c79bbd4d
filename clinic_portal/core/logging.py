# clinic_portal/core/logging.py
"""
Structured logging for the booking service.

Every record carries the request's correlation id and, once the caller is
known, the acting identity. Values are clipped so one noisy field cannot blow
up a log line.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from fastapi import Request

CORRELATION_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_caller: ContextVar[Dict[str, Any]] = ContextVar("caller", default={})

# Keys whose values are free text and get clipped
_CLIPPED_KEYS = ("message", "error", "detail", "notes", "review")


class ClipProcessor:
    """Bound free-text values to `max_length` characters."""

    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        for key in _CLIPPED_KEYS:
            if key in event_dict and event_dict[key] is not None:
                event_dict[key] = str(event_dict[key])[:self.max_length]
        return event_dict


class RequestContextProcessor:
    """Attach the correlation id and caller fields of the current request."""

    def __call__(self, logger, method_name, event_dict):
        correlation_id = _correlation_id.get()
        if correlation_id:
            event_dict.setdefault("correlation_id", correlation_id)
        for key, value in _caller.get().items():
            event_dict.setdefault(key, value)
        return event_dict


def setup_logging(debug: bool = False, max_log_length: int = 200, level: str = "INFO"):
    """Configure structlog on top of stdlib logging; JSON lines unless debugging."""
    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            RequestContextProcessor(),
            ClipProcessor(max_length=max_log_length),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )


def get_logger(name: str = __name__):
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str):
    _correlation_id.set(correlation_id)


def set_user_context(user_id: Optional[str] = None, endpoint: Optional[str] = None,
                     method: Optional[str] = None, **extra):
    """Remember who is calling which endpoint for the rest of the request."""
    caller = dict(_caller.get())
    for key, value in (("user_id", user_id), ("endpoint", endpoint), ("method", method)):
        if value:
            caller[key] = value
    caller.update(extra)
    _caller.set(caller)


def clear_context():
    _correlation_id.set("")
    _caller.set({})


class LoggingMiddleware:
    """
    HTTP middleware: tags each request with a short correlation id (echoed in
    the X-Correlation-ID header) and logs requests that are slow or fail.
    """

    def __init__(self, log_requests: bool = False, log_responses: bool = False,
                 slow_threshold: float = 2.0):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.slow_threshold = slow_threshold
        self.logger = get_logger("clinic_portal.http")

    async def __call__(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:8]
        set_correlation_id(correlation_id)
        set_user_context(endpoint=request.url.path, method=request.method)
        request.state.correlation_id = correlation_id

        if self.log_requests:
            self.logger.info("request_start", query=dict(request.query_params))

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration=round(time.perf_counter() - started, 3),
            )
            clear_context()
            raise

        duration = time.perf_counter() - started
        slow = duration > self.slow_threshold
        if self.log_responses or slow or response.status_code >= 400:
            self.logger.info(
                "request_complete",
                status_code=response.status_code,
                duration=round(duration, 3),
                slow=slow,
            )
        clear_context()

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
