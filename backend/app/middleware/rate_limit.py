# backend/app/middleware/rate_limit.py
"""
Rate limiting for API endpoints.

Every portfolio request and every refresh run fans out to Yahoo Finance,
the fund pages and two FX APIs. Limiting per client keeps a misbehaving
dashboard or a mis-scheduled cron caller from burning those quotas.

Key by: Client IP address (X-Forwarded-For only from trusted proxies)
Storage: In-memory (single-instance deployment)

Usage:
    from app.middleware.rate_limit import limiter, RATE_LIMIT_PRICES

    @router.get("/prices")
    @limiter.limit(RATE_LIMIT_PRICES)
    async def get_prices(request: Request):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_PORTFOLIO,
    RATE_LIMIT_PRICES,
    RATE_LIMIT_LEDGER,
    RATE_LIMIT_REFRESH,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

# Seconds advertised in Retry-After when a limit is hit
RETRY_AFTER_SECONDS = 60


def _get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Forwarded headers are honoured only when the immediate peer is a
    trusted proxy, otherwise clients could spoof their own key.
    """
    peer_ip = get_remote_address(request)

    if settings.trust_proxy_headers or peer_ip in settings.trusted_proxy_ips:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry is the original client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return peer_ip


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """
    Return a 429 in the same error envelope as every other API error.
    """
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(
        f"Rate limit exceeded for {_get_client_ip(request)} on {request.url.path}: {limit_info}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {
                "retry_after": RETRY_AFTER_SECONDS,
            },
        },
        headers={
            "Retry-After": str(RETRY_AFTER_SECONDS),
        },
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_PORTFOLIO",
    "RATE_LIMIT_PRICES",
    "RATE_LIMIT_LEDGER",
    "RATE_LIMIT_REFRESH",
    "RATE_LIMIT_HEALTH",
]
