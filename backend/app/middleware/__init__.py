# backend/app/middleware/__init__.py
"""
Middleware components for the portfolio valuation service.

This package contains ASGI middleware for:
- Correlation ID tracking for request tracing
- Rate limiting to protect upstream quote and FX provider quotas

Usage:
    from app.middleware import CorrelationIdMiddleware, limiter

    app.add_middleware(CorrelationIdMiddleware)
    app.state.limiter = limiter
"""

from app.middleware.correlation import CorrelationIdMiddleware
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
]
