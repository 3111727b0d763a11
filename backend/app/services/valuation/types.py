# backend/app/services/valuation/types.py
"""
Internal data types for the Valuation Engine.

These dataclasses are used internally by the valuation calculators.
They are NOT Pydantic schemas - those are defined in app/schemas/portfolio.py
for API serialization.

Design Principles:
- Immutable (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- No rounding: values carry full Decimal precision; serialization formats
- "_jpy" fields are converted with the request's USD/JPY rate, every other
  amount is in the holding's own currency

Type Hierarchy:
    HoldingValuation    - One holding priced and converted
    CategorySummary     - JPY total and share for one asset category
    PortfolioSummary    - Totals across holdings and other assets
    ValuationResult     - Everything above for one request
    TransactionSummary  - Per-currency totals for a transaction listing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from app.services.market_data.base import QuoteSource


# =============================================================================
# HOLDINGS
# =============================================================================

@dataclass(frozen=True)
class HoldingValuation:
    """
    A holding enriched with price, value and P&L.

    Identity (copied from the holding):
        id, symbol, name, category, account_type, quantity, avg_cost, currency

    Pricing (holding currency):
        current_price: Quote price, or avg_cost when no usable quote
        previous_price: Previous close, or current_price when unknown
        price_source: live, cache or cost_basis

    Value (holding currency):
        total_value = current_price × quantity
        cost_basis = avg_cost × quantity
        unrealized_pnl = total_value - cost_basis
        unrealized_pnl_percent = unrealized_pnl / cost_basis × 100 (0 if no cost)
        day_change = (current_price - previous_price) × quantity

    JPY equivalents:
        total_value_jpy, cost_basis_jpy, unrealized_pnl_jpy, day_change_jpy
    """

    id: int | str
    symbol: str
    name: str
    category: str
    account_type: str
    quantity: Decimal
    avg_cost: Decimal
    currency: str

    current_price: Decimal
    previous_price: Decimal
    price_source: QuoteSource

    total_value: Decimal
    cost_basis: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal
    day_change: Decimal

    total_value_jpy: Decimal
    cost_basis_jpy: Decimal
    unrealized_pnl_jpy: Decimal
    day_change_jpy: Decimal

    @property
    def previous_value_jpy(self) -> Decimal:
        """Value at previous close, in JPY."""
        return self.total_value_jpy - self.day_change_jpy

    @property
    def day_change_percent(self) -> Decimal:
        if self.previous_price == 0:
            return Decimal("0")
        return (self.current_price - self.previous_price) / self.previous_price * Decimal("100")


# =============================================================================
# AGGREGATES
# =============================================================================

@dataclass(frozen=True)
class CategorySummary:
    """
    One asset category's share of the portfolio.

    Attributes:
        category: Category key ("us_stock", ...)
        label: Display label (the key itself for unknown categories)
        color: Chart colour
        value: JPY total over holdings and other assets
        percentage: value / grand total × 100 (0 when the total is 0)
    """

    category: str
    label: str
    color: str
    value: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Portfolio-wide totals, all in JPY.

    Attributes:
        total_value: Holdings + other assets
        previous_day_value: Holdings at previous close + other assets
        day_change: total_value - previous_day_value
        day_change_percent: day_change / previous_day_value × 100
        holdings_value: Market value of holdings only
        other_assets_value: Declared value of other assets
        total_cost_basis: Cost basis of holdings
        total_unrealized_pnl: holdings_value - total_cost_basis
        total_unrealized_pnl_percent: total_unrealized_pnl / total_cost_basis × 100
        year_realized_pnl: Realized P&L of sells in the valuation year
        year_dividends: Dividends received in the valuation year
        holding_count: Number of holdings valued
    """

    total_value: Decimal
    previous_day_value: Decimal
    day_change: Decimal
    day_change_percent: Decimal
    holdings_value: Decimal
    other_assets_value: Decimal
    total_cost_basis: Decimal
    total_unrealized_pnl: Decimal
    total_unrealized_pnl_percent: Decimal
    year_realized_pnl: Decimal
    year_dividends: Decimal
    holding_count: int


@dataclass(frozen=True)
class ValuationResult:
    """
    Output of ValuationEngine.valuate().

    Holdings keep the input order; categories are sorted by value
    descending (stable for ties).
    """

    as_of: date
    exchange_rate: Decimal
    summary: PortfolioSummary
    holdings: list[HoldingValuation] = field(default_factory=list)
    categories: list[CategorySummary] = field(default_factory=list)


# =============================================================================
# TRANSACTION LISTING
# =============================================================================

@dataclass(frozen=True)
class TransactionSummary:
    """
    Totals over a transaction listing, keyed by currency.

    Amounts stay in the currency the broker recorded them in; the listing
    is not tied to a request exchange rate.
    """

    realized_pnl: dict[str, Decimal] = field(default_factory=dict)
    fees: dict[str, Decimal] = field(default_factory=dict)
    sell_count: int = 0
    buy_count: int = 0
