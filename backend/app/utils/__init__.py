# backend/app/utils/__init__.py
"""
Cross-cutting utilities for the portfolio valuation service.

- logging: Logging configuration and setup with correlation ID support
- context: Request context management for correlation IDs
- fx_conversion: USD/JPY conversion helpers
- formatting: Display formatting for amounts and percentages

Usage:
    from app.utils import setup_logging, get_logger
    from app.utils import get_correlation_id, set_correlation_id
    from app.utils.fx_conversion import to_jpy
"""

from app.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from app.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
