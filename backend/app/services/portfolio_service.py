# backend/app/services/portfolio_service.py
"""
Portfolio Services - the two workflows exposed over HTTP.

PortfolioSnapshotService:
    holdings → QuoteResolver (tiered quotes) + ExchangeRateResolver
    → ValuationEngine → PortfolioSnapshot

PriceRefreshService:
    holdings → live fetch → one daily price row per holding symbol,
    plus the day's USD/JPY rate. These rows are the cache tier.

Failure policy:
    Reading holdings is the only fatal step. StoreUnavailableError from
    read_holdings propagates so the router can answer 500 with safe
    defaults. Other assets, transactions and dividends are optional
    inputs: a failed read is logged and valued as empty.

Usage:
    service = PortfolioSnapshotService(store, quote_resolver, rate_resolver, engine)
    snapshot = await service.build_snapshot()
    snapshot.price_tier        # PriceTier.CACHE
    snapshot.degraded_symbols  # ["ghq-dist"]
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TypeVar

from app.services.exceptions import StoreError
from app.services.fx_rate_service import ExchangeRateResolver, ExchangeRateResult
from app.services.market_data.fetcher import QuoteFetcher
from app.services.protocols import PortfolioStore
from app.services.quote_resolution import PriceTier, QuoteResolver
from app.services.records import StoredExchangeRate
from app.services.symbol_resolution import SymbolResolver
from app.services.valuation import (
    CategorySummary,
    HoldingValuation,
    PortfolioSummary,
    ValuationEngine,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================

@dataclass
class PortfolioSnapshot:
    """
    Everything the dashboard needs for one render.

    price_tier is None when there was nothing to price (no holdings, or
    the holdings could not be read). error is set only in the latter case.
    """

    holdings: list[HoldingValuation] = field(default_factory=list)
    categories: list[CategorySummary] = field(default_factory=list)
    summary: PortfolioSummary | None = None
    exchange_rate: ExchangeRateResult | None = None
    price_tier: PriceTier | None = None
    degraded_symbols: list[str] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None


@dataclass
class RefreshResult:
    """
    Outcome of one refresh run.

    previous_exchange_rate is the latest rate stored before this run, or
    None when none was stored or it could not be read.
    """

    success: bool
    updated_symbols: list[str]
    total_symbols: int
    exchange_rate: ExchangeRateResult
    exchange_rate_saved: bool
    previous_exchange_rate: StoredExchangeRate | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def updated_count(self) -> int:
        return len(self.updated_symbols)

    @property
    def exchange_rate_change_percent(self) -> Decimal | None:
        """Move of this run's rate against the previously stored one."""
        previous = self.previous_exchange_rate
        if previous is None or previous.rate <= 0:
            return None
        return (self.exchange_rate.rate - previous.rate) / previous.rate * Decimal("100")


# =============================================================================
# SNAPSHOT
# =============================================================================

class PortfolioSnapshotService:
    """
    Builds valuation snapshots with tiered price fallback.

    Args:
        store: Portfolio store
        quote_resolver: Live → cache → cost-basis quote resolution
        rate_resolver: USD/JPY provider chain
        engine: Valuation math
    """

    def __init__(
            self,
            store: PortfolioStore,
            quote_resolver: QuoteResolver,
            rate_resolver: ExchangeRateResolver,
            engine: ValuationEngine,
    ) -> None:
        self._store = store
        self._quote_resolver = quote_resolver
        self._rate_resolver = rate_resolver
        self._engine = engine

    async def build_snapshot(self, as_of: date | None = None) -> PortfolioSnapshot:
        """
        Value the stored portfolio.

        Raises:
            StoreUnavailableError: Holdings could not be read
        """
        as_of = as_of or date.today()
        holdings = self._store.read_holdings()

        if not holdings:
            logger.info("No holdings stored; returning empty snapshot")
            return PortfolioSnapshot(exchange_rate=self._rate_resolver.default_result(as_of))

        # Quotes and the FX rate come from unrelated sources
        resolution, rate = await asyncio.gather(
            self._quote_resolver.resolve(holdings),
            self._rate_resolver.resolve_rate(),
        )

        other_assets = _read_optional("read_other_assets", self._store.read_other_assets, [])
        transactions = _read_optional(
            "read_transactions", lambda: self._store.read_transactions(as_of.year), []
        )
        dividends = _read_optional(
            "read_dividends", lambda: self._store.read_dividends(as_of.year), []
        )

        result = self._engine.valuate(
            holdings=holdings,
            quotes=resolution.quotes,
            previous_quotes=None,
            exchange_rate=rate.rate,
            other_assets=other_assets,
            transactions=transactions,
            dividends=dividends,
            as_of=as_of,
        )

        logger.info(
            f"Portfolio snapshot: {result.summary.holding_count} holdings, "
            f"total {result.summary.total_value} JPY, tier {resolution.tier.value}, "
            f"rate {rate.rate} ({rate.provider})"
        )

        return PortfolioSnapshot(
            holdings=result.holdings,
            categories=result.categories,
            summary=result.summary,
            exchange_rate=rate,
            price_tier=resolution.tier,
            degraded_symbols=resolution.degraded_symbols,
        )

    def empty_snapshot(self, error: str | None = None) -> PortfolioSnapshot:
        """Safe defaults: no holdings, default rate, no summary."""
        return PortfolioSnapshot(exchange_rate=self._rate_resolver.default_result(), error=error)


# =============================================================================
# REFRESH
# =============================================================================

class PriceRefreshService:
    """
    Writes the daily cache rows used when live quotes are unavailable.

    Args:
        store: Portfolio store
        fetcher: Live quote fetcher
        rate_resolver: USD/JPY provider chain
        symbol_resolver: Builds fetch plans (default fund code table)
    """

    def __init__(
            self,
            store: PortfolioStore,
            fetcher: QuoteFetcher,
            rate_resolver: ExchangeRateResolver,
            symbol_resolver: SymbolResolver | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._rate_resolver = rate_resolver
        self._symbol_resolver = symbol_resolver or SymbolResolver()

    async def refresh(self, today: date | None = None) -> RefreshResult:
        """
        Fetch live prices for every holding and persist them.

        Only live quotes are written; a holding the fetch missed keeps its
        previous row. The default FX rate is never persisted.

        Raises:
            StoreUnavailableError: Holdings could not be read or rows not written
        """
        today = today or date.today()
        holdings = self._store.read_holdings()
        plan = self._symbol_resolver.build_plan(holdings)

        quotes = {} if plan.is_empty else await self._fetcher.fetch_batch(plan)

        updated: list[str] = []
        for symbol, quote in quotes.items():
            self._store.append_quote_snapshot(symbol, quote.price, quote.currency, today)
            updated.append(symbol)

        previous_rate = _read_optional(
            "read_latest_exchange_rate", self._store.read_latest_exchange_rate, None
        )
        rate = await self._rate_resolver.resolve_rate()
        rate_saved = False
        if rate.is_default:
            logger.warning("Skipping exchange rate snapshot: only the default rate is available")
        else:
            self._store.append_exchange_rate(rate.rate, today, rate.provider)
            rate_saved = True

        total = len({h.symbol for h in holdings})
        logger.info(
            f"Price refresh for {today}: {len(updated)}/{total} symbols updated, "
            f"USD/JPY {rate.rate} ({rate.provider})"
        )

        return RefreshResult(
            success=total == 0 or len(updated) > 0,
            updated_symbols=updated,
            total_symbols=total,
            exchange_rate=rate,
            exchange_rate_saved=rate_saved,
            previous_exchange_rate=previous_rate,
        )


# =============================================================================
# HELPERS
# =============================================================================

def _read_optional(operation: str, read: Callable[[], T], default: T) -> T:
    try:
        return read()
    except StoreError as e:
        logger.warning(f"{operation} failed, continuing without it: {e}")
        return default
