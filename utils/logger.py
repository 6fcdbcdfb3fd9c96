import contextvars
import logging
import os
import sys
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv(
    "LOG_FORMAT",
    "%(asctime)s %(levelname)s [%(name)s] rid=%(request_id)s %(message)s",
)

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


def current_request_id() -> str:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Stamp every record with the id of the request being served ("-" outside one)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


def setup_logging() -> None:
    """Configure root logging and common third-party loggers (uvicorn).

    - Level controlled by LOG_LEVEL env var (default INFO)
    - Console formatter with the request id (LOG_FORMAT overrides)
    - Align uvicorn loggers with our level
    """
    root = logging.getLogger()
    # If logging is already configured (e.g., by uvicorn), don't add duplicate handlers
    if not any(getattr(h, "_quick_form", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdFilter())
        handler._quick_form = True
        root.addHandler(handler)
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    root.setLevel(level)

    # Align uvicorn loggers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)


class RequestContextLogMiddleware(BaseHTTPMiddleware):
    """Middleware that:
    - Uses the incoming X-Request-ID or generates one, and exposes it to log records
    - Logs request start and completion with latency and status code
    - Attaches request_id to response headers
    """

    def __init__(self, app):
        super().__init__(app)
        self.logger = logging.getLogger("backend.http")

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = _request_id.set(request_id)
        start = time.perf_counter()

        method = request.method
        path = request.url.path
        origin = request.headers.get("origin") or "-"
        self.logger.info("request start %s %s origin=%s", method, path, origin)

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self.logger.exception("request error %s %s time_ms=%s", method, path, elapsed_ms)
            _request_id.reset(token)
            raise

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        response.headers["x-request-id"] = request_id
        self.logger.info(
            "request end %s %s status=%s time_ms=%s",
            method,
            path,
            response.status_code,
            elapsed_ms,
        )
        _request_id.reset(token)
        return response
