# backend/app/services/quote_resolution.py
"""
Quote Resolution - three-tier price fallback.

Every portfolio request must end with a price for every holding, even when
Yahoo is down, a fund page changed layout, or the store is unreachable.
QuoteResolver walks down a fixed ladder, once per request:

    LIVE        Fetch from providers. Used when at least one quote came back.
                Holdings the fetch missed are priced at cost.
         ↓ fetch raised or returned nothing
    CACHE       Latest persisted price per symbol (written by the refresh
                job). Used when it covers at least one holding. Holdings it
                misses are priced at cost.
         ↓ store failed or covers no holding
    COST_BASIS  Every holding priced at its average cost.

The ladder only goes down. The tier reached is reported with the quotes so
the client can flag stale numbers.

Cache and cost-basis quotes have no previous close; their previous_close
equals their price, so they report zero day change.

Usage:
    resolver = QuoteResolver(fetcher, store)
    resolution = await resolver.resolve(holdings)
    resolution.tier              # PriceTier.LIVE
    resolution.degraded_symbols  # ["ghq-dist"]
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from app.services.exceptions import StoreError
from app.services.market_data.base import Quote, QuoteSource
from app.services.market_data.fetcher import QuoteFetcher
from app.services.protocols import PortfolioStore
from app.services.records import HoldingRecord
from app.services.symbol_resolution import SymbolResolver

logger = logging.getLogger(__name__)


class PriceTier(str, Enum):
    LIVE = "live"
    CACHE = "cache"
    COST_BASIS = "cost_basis"


@dataclass
class QuoteResolution:
    """
    Outcome of one resolve() call.

    Attributes:
        quotes: Quote for every holding symbol (never missing one)
        tier: Highest tier that produced prices
        degraded_symbols: Holdings priced at cost basis, in holding order
    """

    quotes: dict[str, Quote]
    tier: PriceTier
    degraded_symbols: list[str] = field(default_factory=list)


def cost_basis_quote(holding: HoldingRecord) -> Quote:
    return Quote(
        symbol=holding.symbol,
        price=holding.avg_cost,
        previous_close=holding.avg_cost,
        currency=holding.currency,
        source=QuoteSource.COST_BASIS,
    )


class QuoteResolver:
    """
    Degradation controller for quotes.

    Args:
        fetcher: Live quote fetcher
        store: Portfolio store (cache tier)
        symbol_resolver: Builds fetch plans (default fund code table)
    """

    def __init__(
            self,
            fetcher: QuoteFetcher,
            store: PortfolioStore,
            symbol_resolver: SymbolResolver | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._symbol_resolver = symbol_resolver or SymbolResolver()

    async def resolve(self, holdings: Sequence[HoldingRecord]) -> QuoteResolution:
        """
        Quotes for every holding, from the highest tier that works.

        Never raises for provider or store failures.
        """
        if not holdings:
            return QuoteResolution(quotes={}, tier=PriceTier.LIVE)

        live = await self._try_live(holdings)
        if live:
            return self._complete(holdings, live, PriceTier.LIVE)

        cached = self._try_cache(holdings)
        if cached:
            return self._complete(holdings, cached, PriceTier.CACHE)

        logger.warning(f"No live or cached prices; valuing {len(holdings)} holdings at cost basis")
        return self._complete(holdings, {}, PriceTier.COST_BASIS)

    # =========================================================================
    # TIERS
    # =========================================================================

    async def _try_live(self, holdings: Sequence[HoldingRecord]) -> dict[str, Quote]:
        try:
            plan = self._symbol_resolver.build_plan(holdings)
            quotes = await self._fetcher.fetch_batch(plan)
        except Exception as e:
            logger.warning(f"Live quote fetch failed, falling back to cache: {e}", exc_info=True)
            return {}

        if not quotes:
            logger.warning("Live quote fetch returned nothing, falling back to cache")
        return quotes

    def _try_cache(self, holdings: Sequence[HoldingRecord]) -> dict[str, Quote]:
        try:
            stored = self._store.read_latest_quotes()
        except StoreError as e:
            logger.error(f"Cached price read failed, falling back to cost basis: {e}")
            return {}

        quotes: dict[str, Quote] = {}
        for holding in holdings:
            entry = stored.get(holding.symbol)
            if entry is None or entry.price <= 0:
                continue
            quotes[holding.symbol] = Quote(
                symbol=holding.symbol,
                price=entry.price,
                previous_close=entry.price,
                currency=entry.currency,
                source=QuoteSource.CACHE,
            )

        if not quotes:
            logger.warning("Price cache covers no holding, falling back to cost basis")
        return quotes

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _complete(
            holdings: Sequence[HoldingRecord],
            quotes: dict[str, Quote],
            tier: PriceTier,
    ) -> QuoteResolution:
        """Patch every holding without a quote with its cost basis."""
        completed: dict[str, Quote] = {}
        degraded: list[str] = []

        for holding in holdings:
            quote = quotes.get(holding.symbol)
            if quote is None:
                quote = cost_basis_quote(holding)
                degraded.append(holding.symbol)
            completed[holding.symbol] = quote

        if degraded and tier != PriceTier.COST_BASIS:
            logger.warning(
                f"{len(degraded)}/{len(holdings)} holdings valued at cost basis "
                f"(tier {tier.value}): {', '.join(degraded)}"
            )
        logger.info(f"Resolved {len(completed)} quotes at tier {tier.value}")

        return QuoteResolution(quotes=completed, tier=tier, degraded_symbols=degraded)
