# backend/app/services/valuation/service.py
"""
Valuation Engine - holdings + quotes + rate → valuation snapshot.

This is the single entry point for valuation math:
- valuate(): enriched holdings, category summaries, portfolio summary

Design Principles:
- Pure: no I/O, no clock access beyond the as_of default
- Composable: Uses specialized calculators for each task
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Base currency is configuration (JPY is the only supported value)

Usage:
    from app.services.valuation import ValuationEngine, build_previous_quotes

    engine = ValuationEngine(base_currency=settings.base_currency)
    result = engine.valuate(
        holdings=holdings,
        quotes=resolution.quotes,
        previous_quotes=build_previous_quotes(resolution.quotes),
        exchange_rate=rate.rate,
        other_assets=other_assets,
        transactions=transactions,
        dividends=dividends,
    )
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal

from app.services.exceptions import ValidationError
from app.services.market_data.base import Quote
from app.services.records import (
    DividendRecord,
    HoldingRecord,
    OtherAssetRecord,
    TransactionRecord,
)
from app.services.valuation.calculators import (
    ZERO,
    CategoryAggregator,
    DividendCalculator,
    HoldingValueCalculator,
    RealizedPnLCalculator,
    percent_of,
)
from app.services.valuation.types import PortfolioSummary, ValuationResult
from app.utils.fx_conversion import to_jpy

logger = logging.getLogger(__name__)

SUPPORTED_BASE_CURRENCIES = frozenset({"JPY"})


def build_previous_quotes(quotes: Mapping[str, Quote]) -> dict[str, Decimal]:
    """Previous-close price per holding symbol, taken from the quotes themselves."""
    return {symbol: quote.previous_close for symbol, quote in quotes.items()}


class ValuationEngine:
    """
    Main entry point for portfolio valuation.

    Attributes:
        _value_calc: Prices and converts single holdings
        _category_agg: Category roll-up
        _realized_calc: Year-to-date realized P&L
        _dividend_calc: Year-to-date dividends
    """

    def __init__(self, base_currency: str = "JPY") -> None:
        if base_currency not in SUPPORTED_BASE_CURRENCIES:
            raise ValidationError(
                f"Unsupported base currency: {base_currency}",
                field="base_currency",
            )
        self._base_currency = base_currency

        self._value_calc = HoldingValueCalculator()
        self._category_agg = CategoryAggregator()
        self._realized_calc = RealizedPnLCalculator()
        self._dividend_calc = DividendCalculator()

    @property
    def base_currency(self) -> str:
        return self._base_currency

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def valuate(
            self,
            holdings: Sequence[HoldingRecord],
            quotes: Mapping[str, Quote],
            previous_quotes: Mapping[str, Decimal] | None,
            exchange_rate: Decimal,
            other_assets: Sequence[OtherAssetRecord] = (),
            transactions: Sequence[TransactionRecord] = (),
            dividends: Sequence[DividendRecord] = (),
            as_of: date | None = None,
    ) -> ValuationResult:
        """
        Value the portfolio.

        Args:
            holdings: Positions to value
            quotes: Quote per holding symbol (missing → valued at cost)
            previous_quotes: Previous-close price per holding symbol
                (None → derived from quotes; missing → zero day change)
            exchange_rate: USD/JPY (1 USD = X JPY)
            other_assets: Declared non-tradable assets
            transactions: Trades (sells in as_of's year feed realized P&L)
            dividends: Dividend payments (as_of's year is summed)
            as_of: Valuation date (defaults to today)

        Returns:
            ValuationResult with holdings in input order and categories
            sorted by value
        """
        if exchange_rate <= ZERO:
            raise ValidationError(f"exchange_rate must be positive, got {exchange_rate}", field="exchange_rate")

        as_of = as_of or date.today()
        if previous_quotes is None:
            previous_quotes = build_previous_quotes(quotes)

        valuations = [
            self._value_calc.calculate(
                holding,
                quotes.get(holding.symbol),
                previous_quotes.get(holding.symbol),
                exchange_rate,
            )
            for holding in holdings
        ]

        categories = self._category_agg.aggregate(valuations, other_assets, exchange_rate)

        holdings_value = sum((v.total_value_jpy for v in valuations), ZERO)
        holdings_previous_value = sum((v.previous_value_jpy for v in valuations), ZERO)
        total_cost_basis = sum((v.cost_basis_jpy for v in valuations), ZERO)
        other_assets_value = sum(
            (to_jpy(a.value, a.currency, exchange_rate) for a in other_assets),
            ZERO,
        )

        total_value = holdings_value + other_assets_value
        previous_day_value = holdings_previous_value + other_assets_value
        day_change = total_value - previous_day_value
        total_unrealized_pnl = holdings_value - total_cost_basis

        summary = PortfolioSummary(
            total_value=total_value,
            previous_day_value=previous_day_value,
            day_change=day_change,
            day_change_percent=percent_of(day_change, previous_day_value),
            holdings_value=holdings_value,
            other_assets_value=other_assets_value,
            total_cost_basis=total_cost_basis,
            total_unrealized_pnl=total_unrealized_pnl,
            total_unrealized_pnl_percent=percent_of(total_unrealized_pnl, total_cost_basis),
            year_realized_pnl=self._realized_calc.calculate(transactions, as_of.year, exchange_rate),
            year_dividends=self._dividend_calc.calculate(dividends, as_of.year, exchange_rate),
            holding_count=len(valuations),
        )

        logger.debug(
            f"Valued {len(valuations)} holdings and {len(other_assets)} other assets "
            f"at USD/JPY {exchange_rate}: total {total_value}"
        )

        return ValuationResult(
            as_of=as_of,
            exchange_rate=exchange_rate,
            summary=summary,
            holdings=valuations,
            categories=categories,
        )
