# backend/app/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

A single GET /portfolio fans out to dozens of quote, fund page and FX
calls; their log lines share the request's correlation ID so one slow or
degraded request can be followed end to end.

Correlation ID sources (in order of precedence):
1. X-Correlation-ID header (from the dashboard or the scheduler)
2. X-Request-ID header (set by most reverse proxies)
3. Generated UUID4

Incoming IDs longer than 128 characters or containing characters outside
[A-Za-z0-9._:-] are replaced with a fresh UUID, since they end up in
log lines verbatim.

Usage:
    app.add_middleware(CorrelationIdMiddleware)

    # Scheduler passes its own run ID
    curl -X POST -H "X-Correlation-ID: cron-20240115-0900" \\
        http://localhost:8000/cron/update-prices
"""

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.utils.context import set_correlation_id, clear_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

_VALID_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Binds a correlation ID to the request context and echoes it back.

    The ID is readable anywhere in the request via get_correlation_id()
    and is attached to every log record by CorrelationIdFilter.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = self._get_correlation_id(request)
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id

            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({elapsed_ms:.0f} ms)"
            )
            return response

        finally:
            clear_correlation_id()

    @staticmethod
    def _get_correlation_id(request: Request) -> str:
        """First well-formed ID from the headers, else a new UUID."""
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            candidate = request.headers.get(header)
            if candidate and _VALID_ID_RE.match(candidate):
                return candidate
            if candidate:
                logger.debug(f"Ignoring malformed {header} header")

        return str(uuid.uuid4())
