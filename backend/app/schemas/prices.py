# backend/app/schemas/prices.py
"""
Pydantic schemas for live price lookups and the refresh job.

These schemas handle:
- Single and batched live quotes (GET /prices)
- Refresh job results (/cron/update-prices)
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# PRICE SCHEMAS
# =============================================================================

class PriceResponse(BaseModel):
    """A live equity quote."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    price: Decimal = Field(..., gt=0)
    previous_close: Decimal
    change: Decimal = Field(..., description="price - previous_close")
    change_percent: Decimal
    currency: str
    name: str | None = None


class BatchPriceResponse(BaseModel):
    """
    Batched live quotes.

    Symbols that could not be fetched are listed in failed with the
    error message; they never fail the whole request.
    """

    prices: dict[str, PriceResponse] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# REFRESH SCHEMAS
# =============================================================================

class RefreshResponse(BaseModel):
    """Result of one refresh run."""

    success: bool
    updated: int = Field(..., description="Holding symbols with a new price row")
    total: int = Field(..., description="Distinct holding symbols")
    updated_symbols: list[str] = Field(default_factory=list)
    exchange_rate: Decimal
    exchange_rate_source: str
    exchange_rate_saved: bool
    previous_exchange_rate: Decimal | None = Field(
        None, description="Latest stored rate before this run"
    )
    previous_exchange_rate_date: dt.date | None = None
    exchange_rate_change_percent: Decimal | None = Field(
        None, description="Move against the previous stored rate, percent"
    )
    timestamp: dt.datetime
