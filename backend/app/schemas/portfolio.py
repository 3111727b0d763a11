# backend/app/schemas/portfolio.py
"""
Pydantic schemas for the portfolio snapshot.

These schemas handle:
- Holdings enriched with price, value and P&L
- Category roll-ups for the allocation chart
- Portfolio-wide summary
- Exchange rate and price tier metadata

Amounts are Decimal and serialize as strings, so no precision is lost
between the engine and the client.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# HOLDING SCHEMAS
# =============================================================================

class HoldingResponse(BaseModel):
    """A holding with its valuation."""

    model_config = ConfigDict(from_attributes=True)

    id: int | str
    symbol: str = Field(..., description="Canonical holding symbol")
    name: str
    category: str
    account_type: str
    currency: str = Field(..., description="Quote currency of the holding")
    quantity: Decimal
    avg_cost: Decimal = Field(..., description="Average cost per unit, holding currency")

    current_price: Decimal = Field(..., description="Price used for valuation, holding currency")
    price_source: str = Field(..., description="live, cache or cost_basis")
    total_value: Decimal = Field(..., description="current_price × quantity, holding currency")
    total_value_jpy: Decimal = Field(..., description="total_value converted to JPY")
    cost_basis_jpy: Decimal
    unrealized_pnl: Decimal = Field(..., description="Holding currency")
    unrealized_pnl_jpy: Decimal
    unrealized_pnl_percent: Decimal
    day_change: Decimal = Field(..., description="Holding currency")
    day_change_jpy: Decimal
    day_change_percent: Decimal


# =============================================================================
# AGGREGATE SCHEMAS
# =============================================================================

class CategorySummaryResponse(BaseModel):
    """One slice of the allocation chart."""

    model_config = ConfigDict(from_attributes=True)

    category: str
    label: str = Field(..., description="Display label (category key when unknown)")
    color: str = Field(..., description="Chart colour")
    value: Decimal = Field(..., description="JPY total over holdings and other assets")
    percentage: Decimal = Field(..., description="Share of the grand total, 0-100")


class PortfolioSummaryResponse(BaseModel):
    """Portfolio-wide totals, all in JPY."""

    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal
    previous_day_value: Decimal
    day_change: Decimal
    day_change_percent: Decimal
    holdings_value: Decimal
    other_assets_value: Decimal
    total_cost_basis: Decimal
    total_unrealized_pnl: Decimal
    total_unrealized_pnl_percent: Decimal
    year_realized_pnl: Decimal = Field(..., description="Realized P&L of sells this year")
    year_dividends: Decimal = Field(..., description="Dividends received this year")
    holding_count: int


class ExchangeRateInfo(BaseModel):
    """The USD/JPY rate the snapshot was converted with."""

    model_config = ConfigDict(from_attributes=True)

    usd_jpy: Decimal = Field(..., gt=0, description="1 USD = X JPY")
    as_of: dt.date
    source: str = Field(..., description="Provider tag, 'default' when no provider answered")


# =============================================================================
# SNAPSHOT SCHEMA
# =============================================================================

class PortfolioResponse(BaseModel):
    """
    Response for GET /portfolio.

    price_tier is null when nothing was priced (empty portfolio or store
    failure). degraded_symbols lists holdings valued at cost basis.
    """

    holdings: list[HoldingResponse] = Field(default_factory=list)
    categories: list[CategorySummaryResponse] = Field(default_factory=list)
    summary: PortfolioSummaryResponse | None = None
    exchange_rate: ExchangeRateInfo
    price_tier: str | None = Field(None, description="live, cache or cost_basis")
    degraded_symbols: list[str] = Field(default_factory=list)
    updated_at: dt.datetime
    error: str | None = None
