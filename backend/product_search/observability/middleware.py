"""FastAPI middleware for observability.

Binds a correlation ID for every HTTP request and logs its outcome.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import accept_inbound_request_id, bound_request_id
from .logging_config import get_logger

logger = get_logger(__name__)

# Probe endpoints are polled constantly; keep them out of the info log
_QUIET_PATHS = frozenset({"/health", "/ready", "/metrics"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to generate and inject request IDs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = accept_inbound_request_id(request.headers.get("X-Request-ID"))
        quiet = request.url.path in _QUIET_PATHS

        with bound_request_id(request_id):
            start_time = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    f"{request.method} {request.url.path} failed: {e}",
                    extra={"duration_ms": round(duration_ms, 2)},
                    exc_info=True,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            log = logger.debug if quiet else logger.info
            log(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )

            response.headers["X-Request-ID"] = request_id
            return response
