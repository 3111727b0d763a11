# backend/app/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator follows the Single Responsibility Principle:
- HoldingValueCalculator: Prices one holding and converts it to JPY
- CategoryAggregator: Rolls holdings and other assets up by category
- RealizedPnLCalculator: Sums realized P&L of sells in a year
- DividendCalculator: Sums dividends received in a year
- TransactionSummaryCalculator: Totals a transaction listing per currency

Design Principles:
- Stateless (no instance state, pure functions)
- Receives all dependencies explicitly (quotes, rate)
- Returns structured result objects
- Uses Decimal for ALL financial calculations, without rounding
- Every amount is converted to JPY before it joins a cross-holding sum

Usage:
    value_calc = HoldingValueCalculator()
    valuation = value_calc.calculate(holding, quote, previous_price, usd_jpy)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from app.services.constants import category_display
from app.services.market_data.base import Quote, QuoteSource
from app.services.records import (
    DividendRecord,
    HoldingRecord,
    OtherAssetRecord,
    TransactionRecord,
)
from app.services.valuation.types import CategorySummary, HoldingValuation, TransactionSummary
from app.utils.fx_conversion import to_jpy

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole × 100, or 0 when whole is 0."""
    if whole == ZERO:
        return ZERO
    return part / whole * HUNDRED


# =============================================================================
# HOLDING VALUE CALCULATOR
# =============================================================================

class HoldingValueCalculator:
    """
    Prices a single holding.

    Price selection:
        current_price = quote.price
        Falls back to avg_cost (source=cost_basis) when the quote is absent
        or its price is not positive.

    Day-change baseline:
        previous_price = previous close when known and positive,
        otherwise current_price (day change 0).

    Formulas (holding currency):
        total_value = current_price × quantity
        cost_basis = avg_cost × quantity
        unrealized_pnl = total_value - cost_basis
        unrealized_pct = (unrealized_pnl / cost_basis) × 100

    JPY values multiply USD amounts by the rate; JPY amounts pass through.
    """

    def calculate(
            self,
            holding: HoldingRecord,
            quote: Quote | None,
            previous_price: Decimal | None,
            usd_jpy_rate: Decimal,
    ) -> HoldingValuation:
        if quote is not None and quote.price > ZERO:
            current_price = quote.price
            source = quote.source
        else:
            current_price = holding.avg_cost
            source = QuoteSource.COST_BASIS

        if source == QuoteSource.COST_BASIS or previous_price is None or previous_price <= ZERO:
            previous_price = current_price

        quantity = holding.quantity
        total_value = current_price * quantity
        cost_basis = holding.avg_cost * quantity
        unrealized_pnl = total_value - cost_basis
        day_change = (current_price - previous_price) * quantity

        currency = holding.currency
        return HoldingValuation(
            id=holding.id,
            symbol=holding.symbol,
            name=holding.name,
            category=holding.category,
            account_type=holding.account_type,
            quantity=quantity,
            avg_cost=holding.avg_cost,
            currency=currency,
            current_price=current_price,
            previous_price=previous_price,
            price_source=source,
            total_value=total_value,
            cost_basis=cost_basis,
            unrealized_pnl=unrealized_pnl,
            unrealized_pnl_percent=percent_of(unrealized_pnl, cost_basis),
            day_change=day_change,
            total_value_jpy=to_jpy(total_value, currency, usd_jpy_rate),
            cost_basis_jpy=to_jpy(cost_basis, currency, usd_jpy_rate),
            unrealized_pnl_jpy=to_jpy(unrealized_pnl, currency, usd_jpy_rate),
            day_change_jpy=to_jpy(day_change, currency, usd_jpy_rate),
        )


# =============================================================================
# CATEGORY AGGREGATOR
# =============================================================================

class CategoryAggregator:
    """
    Groups JPY values by asset category.

    Holdings contribute total_value_jpy under their category; other assets
    contribute their declared value (converted to JPY) under their type.

    Output:
        One CategorySummary per category, sorted by value descending.
        Ties keep first-seen order (holdings first, then other assets).
        Percentages are shares of the grand total; all 0 when it is 0.
    """

    def aggregate(
            self,
            holdings: Sequence[HoldingValuation],
            other_assets: Sequence[OtherAssetRecord],
            usd_jpy_rate: Decimal,
    ) -> list[CategorySummary]:
        totals: dict[str, Decimal] = {}

        for valuation in holdings:
            totals[valuation.category] = totals.get(valuation.category, ZERO) + valuation.total_value_jpy

        for asset in other_assets:
            value_jpy = to_jpy(asset.value, asset.currency, usd_jpy_rate)
            totals[asset.asset_type] = totals.get(asset.asset_type, ZERO) + value_jpy

        grand_total = sum(totals.values(), ZERO)

        summaries = []
        for category, value in totals.items():
            display = category_display(category)
            summaries.append(CategorySummary(
                category=category,
                label=display.label,
                color=display.color,
                value=value,
                percentage=percent_of(value, grand_total),
            ))

        # sorted() is stable, including with reverse=True
        return sorted(summaries, key=lambda s: s.value, reverse=True)


# =============================================================================
# REALIZED P&L CALCULATOR
# =============================================================================

class RealizedPnLCalculator:
    """
    Realized P&L for a calendar year, in JPY.

    Only sell transactions dated in the year count. The broker-recorded
    realized P&L of each sell is converted to JPY individually before
    summing; sells without a recorded figure contribute nothing.
    """

    def calculate(
            self,
            transactions: Iterable[TransactionRecord],
            year: int,
            usd_jpy_rate: Decimal,
    ) -> Decimal:
        total = ZERO
        for transaction in transactions:
            if not transaction.is_sell or transaction.date.year != year:
                continue
            if transaction.realized_pnl is None:
                logger.debug(f"Sell {transaction.id} ({transaction.symbol}) has no realized P&L")
                continue
            total += to_jpy(transaction.realized_pnl, transaction.currency, usd_jpy_rate)
        return total


# =============================================================================
# DIVIDEND CALCULATOR
# =============================================================================

class DividendCalculator:
    """
    Dividends received in a calendar year, in JPY.

    Each payment is converted individually before summing.
    """

    def calculate(
            self,
            dividends: Iterable[DividendRecord],
            year: int,
            usd_jpy_rate: Decimal,
    ) -> Decimal:
        return sum(
            (to_jpy(d.amount, d.currency, usd_jpy_rate) for d in dividends if d.date.year == year),
            ZERO,
        )


# =============================================================================
# TRANSACTION SUMMARY
# =============================================================================

class TransactionSummaryCalculator:
    """
    Totals for a transaction listing.

    Realized P&L counts sells only, fees count every transaction. Sums are
    kept per currency.
    """

    def calculate(self, transactions: Iterable[TransactionRecord]) -> TransactionSummary:
        realized: dict[str, Decimal] = {}
        fees: dict[str, Decimal] = {}
        sell_count = 0
        buy_count = 0

        for transaction in transactions:
            currency = transaction.currency
            fees[currency] = fees.get(currency, ZERO) + transaction.fees
            if transaction.is_sell:
                sell_count += 1
                if transaction.realized_pnl is not None:
                    realized[currency] = realized.get(currency, ZERO) + transaction.realized_pnl
            elif transaction.transaction_type == "buy":
                buy_count += 1

        return TransactionSummary(
            realized_pnl=realized,
            fees=fees,
            sell_count=sell_count,
            buy_count=buy_count,
        )
