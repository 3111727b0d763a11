# backend/app/services/constants.py
"""
Centralized constants for the portfolio valuation services.

This module provides a single source of truth for the business constants
used across the application: the fund code table, the category display
table and the tags written into snapshots.

Tunable runtime values (batch sizes, delays, default FX rate, endpoints)
live in app.config.Settings instead.

Usage:
    from app.services.constants import (
        FUND_CODE_MAP,
        CATEGORY_CONFIG,
        DEFAULT_RATE_PROVIDER,
    )
"""

from typing import NamedTuple


# =============================================================================
# FUND CODES
# =============================================================================

# Holding symbol -> fund code used on the fund quote page.
# Distributing and reinvesting classes of one fund share a single NAV,
# so several symbols may map to the same code.
FUND_CODE_MAP: dict[str, str] = {
    "capital-world": "9331107A",
    "ghq-dist": "47316169",
    "ghq-reinv": "47316169",
    "trowe-allcap": "AW31122B",
    "capital-ica": "93311181",
    "pictet-gold": "42312199",
    "ifree-fang": "04311181",
    "emaxis-ac-general": "0331418A",
    "emaxis-ac-nisa": "0331418A",
}


# =============================================================================
# CATEGORY DISPLAY TABLE
# =============================================================================


class CategoryDisplay(NamedTuple):
    label: str
    color: str


CATEGORY_CONFIG: dict[str, CategoryDisplay] = {
    "domestic_stock": CategoryDisplay("国内株式", "#6366f1"),
    "us_stock": CategoryDisplay("米国株式", "#22c55e"),
    "mutual_fund": CategoryDisplay("投資信託", "#f59e0b"),
    "cash": CategoryDisplay("預金・現金", "#3b82f6"),
    "bond": CategoryDisplay("債券", "#8b5cf6"),
    "real_estate": CategoryDisplay("不動産", "#ec4899"),
    "crypto": CategoryDisplay("暗号資産", "#f97316"),
    "insurance": CategoryDisplay("保険", "#14b8a6"),
    "pension": CategoryDisplay("年金", "#64748b"),
}

# Colour for categories missing from the table (label falls back to the key)
UNKNOWN_CATEGORY_COLOR: str = "#888"


def category_display(category: str) -> CategoryDisplay:
    """Display label and chart colour for a category key."""
    return CATEGORY_CONFIG.get(category, CategoryDisplay(category, UNKNOWN_CATEGORY_COLOR))


# =============================================================================
# SOURCE TAGS
# =============================================================================

# Provider tag attached to the configured fallback exchange rate
DEFAULT_RATE_PROVIDER: str = "default"

# Category whose holdings are priced through fund pages instead of quotes
FUND_CATEGORY: str = "mutual_fund"


# =============================================================================
# API RATE LIMITS (slowapi notation: "count/period")
# =============================================================================

# Fallback for endpoints without an explicit limit
RATE_LIMIT_DEFAULT: str = "100/minute"

# Portfolio snapshot: each call may fetch every holding's quote
RATE_LIMIT_PORTFOLIO: str = "30/minute"

# Ad-hoc quote lookups hit Yahoo Finance directly
RATE_LIMIT_PRICES: str = "30/minute"

# Stored holdings and transactions: database reads only
RATE_LIMIT_LEDGER: str = "60/minute"

# Refresh job is expected a few times a day
RATE_LIMIT_REFRESH: str = "10/minute"

# Health checks (load balancers poll frequently)
RATE_LIMIT_HEALTH: str = "300/minute"
