# timetrack/core/request_logging.py
"""
Request logging middleware for tracking all HTTP requests.
"""

import logging
import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from timetrack.core.logging_config import get_logger

logger = get_logger(__name__)

# Monitoring probes would drown the log at INFO
QUIET_PATHS = frozenset({"/health"})


def _log_level(status_code: int, path: str) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every HTTP request with timing, status code and acting employee.

    Reuses the caller's X-Request-ID or generates one, and echoes it back.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            self._log(request, request_id, 500, start_time, error=str(e))
            raise

        self._log(request, request_id, response.status_code, start_time)
        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _log(request: Request, request_id: str, status_code: int, start_time: float, error: str | None = None):
        duration_ms = (time.time() - start_time) * 1000
        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration": duration_ms,
        }

        actor = getattr(request.state, "actor", None)
        if actor is not None:
            log_data["actor_id"] = actor.id

        message = f"{request.method} {request.url.path} - {status_code} ({duration_ms:.2f}ms)"
        if error:
            logger.error(f"{message} - ERROR: {error}", extra={"extra_fields": log_data}, exc_info=True)
            return

        logger.log(_log_level(status_code, request.url.path), message, extra={"extra_fields": log_data})
