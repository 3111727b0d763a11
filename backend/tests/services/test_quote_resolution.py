# backend/tests/services/test_quote_resolution.py
"""
Tests for the three-tier QuoteResolver.

This module tests:
- LIVE tier, with cost-basis patching of missed holdings
- CACHE tier when the live fetch fails or returns nothing
- COST_BASIS tier when the cache is unavailable or covers nothing
- Every holding always receives a quote
"""

import asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.services.market_data.base import QuoteSource
from app.services.market_data.fetcher import QuoteFetcher
from app.services.quote_resolution import PriceTier, QuoteResolver, cost_basis_quote
from app.services.records import StoredQuote
from tests.conftest import FakePortfolioStore, fund_page, make_holding


def _stored(symbol: str, price: str, currency: str = "JPY") -> StoredQuote:
    return StoredQuote(symbol=symbol, price=Decimal(price), currency=currency, date=date(2024, 1, 14))


@pytest.fixture
def fetcher(quote_provider, fund_provider, sleep_recorder) -> QuoteFetcher:
    return QuoteFetcher(quote_provider, fund_provider, sleep=sleep_recorder)


@pytest.fixture
def holdings():
    return [
        make_holding("7203.T", quantity="100", avg_cost="2400"),
        make_holding("AAPL", quantity="50", avg_cost="150", currency="USD", category="us_stock"),
        make_holding("ghq-dist", quantity="1000", avg_cost="15000", category="mutual_fund"),
    ]


# =============================================================================
# LIVE TIER
# =============================================================================

class TestLiveTier:
    """Tests for resolution from live quotes."""

    def test_all_live(self, fetcher, fake_store, quote_provider, fund_provider, holdings):
        quote_provider.add_quote("7203.T", "2856", previous_close="2800")
        quote_provider.add_quote("AAPL", "182.5", currency="USD")
        fund_provider.add_document("47316169", fund_page("16,120"))

        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve(holdings))

        assert resolution.tier is PriceTier.LIVE
        assert resolution.degraded_symbols == []
        assert resolution.quotes["ghq-dist"].price == Decimal("16120")
        assert all(q.source is QuoteSource.LIVE for q in resolution.quotes.values())

    def test_partial_live_patches_with_cost(self, fetcher, fake_store, quote_provider, holdings):
        quote_provider.add_quote("7203.T", "2856")

        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve(holdings))

        assert resolution.tier is PriceTier.LIVE
        assert resolution.degraded_symbols == ["AAPL", "ghq-dist"]
        assert resolution.quotes["AAPL"].price == Decimal("150")
        assert resolution.quotes["AAPL"].source is QuoteSource.COST_BASIS
        assert resolution.quotes["AAPL"].currency == "USD"

    def test_live_does_not_mix_cache(self, fetcher, quote_provider, holdings):
        """Once the live tier is used, the cache is not consulted for misses."""
        quote_provider.add_quote("7203.T", "2856")
        store = FakePortfolioStore(quotes={"AAPL": _stored("AAPL", "180", "USD")})

        resolution = asyncio.run(QuoteResolver(fetcher, store).resolve(holdings))

        assert resolution.quotes["AAPL"].source is QuoteSource.COST_BASIS


# =============================================================================
# CACHE TIER
# =============================================================================

class TestCacheTier:
    """Tests for fallback to stored prices."""

    def test_no_live_quotes_uses_cache(self, fetcher, holdings):
        store = FakePortfolioStore(quotes={
            "7203.T": _stored("7203.T", "2850"),
            "AAPL": _stored("AAPL", "181", "USD"),
        })

        resolution = asyncio.run(QuoteResolver(fetcher, store).resolve(holdings))

        assert resolution.tier is PriceTier.CACHE
        assert resolution.quotes["7203.T"].price == Decimal("2850")
        assert resolution.quotes["7203.T"].source is QuoteSource.CACHE
        assert resolution.quotes["7203.T"].day_change == Decimal("0")
        assert resolution.degraded_symbols == ["ghq-dist"]

    def test_fetch_exception_uses_cache(self, fake_store, holdings):
        fetcher = AsyncMock()
        fetcher.fetch_batch.side_effect = RuntimeError("event loop exploded")
        fake_store.quotes = {"7203.T": _stored("7203.T", "2850")}

        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve(holdings))

        assert resolution.tier is PriceTier.CACHE

    def test_cache_keyed_by_holding_symbol(self, fetcher):
        holdings = [make_holding("1234A.T-sbi"), make_holding("1234A.T-rakuten")]
        store = FakePortfolioStore(quotes={"1234A.T-sbi": _stored("1234A.T-sbi", "1500")})

        resolution = asyncio.run(QuoteResolver(fetcher, store).resolve(holdings))

        assert resolution.tier is PriceTier.CACHE
        assert resolution.quotes["1234A.T-sbi"].source is QuoteSource.CACHE
        assert resolution.degraded_symbols == ["1234A.T-rakuten"]

    def test_non_positive_cached_price_ignored(self, fetcher, holdings):
        store = FakePortfolioStore(quotes={
            "7203.T": _stored("7203.T", "0"),
            "AAPL": _stored("AAPL", "181", "USD"),
        })

        resolution = asyncio.run(QuoteResolver(fetcher, store).resolve(holdings))

        assert resolution.quotes["7203.T"].source is QuoteSource.COST_BASIS


# =============================================================================
# COST BASIS TIER
# =============================================================================

class TestCostBasisTier:
    """Tests for the last-resort tier."""

    def test_empty_cache(self, fetcher, fake_store, holdings):
        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve(holdings))

        assert resolution.tier is PriceTier.COST_BASIS
        assert resolution.degraded_symbols == ["7203.T", "AAPL", "ghq-dist"]
        assert resolution.quotes["ghq-dist"].price == Decimal("15000")

    def test_cache_unavailable(self, fetcher, fake_store, holdings):
        fake_store.quotes = {"7203.T": _stored("7203.T", "2850")}
        fake_store.fail_operations.add("read_latest_quotes")

        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve(holdings))

        assert resolution.tier is PriceTier.COST_BASIS

    def test_cache_covering_no_holding(self, fetcher, holdings):
        store = FakePortfolioStore(quotes={"SOLD.T": _stored("SOLD.T", "999")})

        resolution = asyncio.run(QuoteResolver(fetcher, store).resolve(holdings))

        assert resolution.tier is PriceTier.COST_BASIS

    def test_every_holding_has_a_quote(self, fetcher, fake_store, holdings):
        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve(holdings))

        assert set(resolution.quotes) == {h.symbol for h in holdings}


class TestEdgeCases:
    """Tests for empty input and the cost-basis helper."""

    def test_no_holdings(self, fetcher, fake_store, quote_provider):
        resolution = asyncio.run(QuoteResolver(fetcher, fake_store).resolve([]))

        assert resolution.quotes == {}
        assert resolution.degraded_symbols == []
        assert quote_provider.calls == []

    def test_cost_basis_quote(self):
        quote = cost_basis_quote(make_holding("AAPL", avg_cost="150", currency="USD"))

        assert quote.price == Decimal("150")
        assert quote.previous_close == Decimal("150")
        assert quote.currency == "USD"
        assert quote.source is QuoteSource.COST_BASIS
