# backend/tests/services/test_quote_fetcher.py
"""
Tests for QuoteFetcher.

This module tests:
- Batching and the pause between batches
- Per-key failure isolation
- Fund path: one page per fund code, NAV extraction
- fetch_batch expansion back to holding symbols
"""

import asyncio
from decimal import Decimal

import pytest

from app.services.exceptions import NavNotFoundError, ProviderUnavailableError, TickerNotFoundError
from app.services.market_data.base import QuoteSource
from app.services.market_data.fetcher import QuoteFetcher
from app.services.symbol_resolution import SymbolResolver
from tests.conftest import fund_page, make_holding


@pytest.fixture
def fetcher(quote_provider, fund_provider, sleep_recorder) -> QuoteFetcher:
    return QuoteFetcher(quote_provider, fund_provider, sleep=sleep_recorder)


# =============================================================================
# CONSTRUCTION
# =============================================================================

class TestQuoteFetcherInit:
    """Tests for constructor validation."""

    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_rejects_non_positive_batch_size(self, quote_provider, fund_provider, batch_size):
        with pytest.raises(ValueError, match="batch_size"):
            QuoteFetcher(quote_provider, fund_provider, batch_size=batch_size)


# =============================================================================
# EQUITIES
# =============================================================================

class TestFetchEquities:
    """Tests for fetch_equities()."""

    def test_all_successful(self, fetcher, quote_provider):
        quote_provider.add_quote("7203.T", "2856", previous_close="2800")
        quote_provider.add_quote("AAPL", "182.5", currency="USD")

        result = asyncio.run(fetcher.fetch_equities(["7203.T", "AAPL"]))

        assert result.all_successful
        assert result.success_count == 2
        assert result.successful["7203.T"].price == Decimal("2856")
        assert result.successful["AAPL"].currency == "USD"

    def test_failure_isolated_to_its_key(self, fetcher, quote_provider):
        quote_provider.add_quote("7203.T", "2856")
        quote_provider.add_error("AAPL", ProviderUnavailableError("fake_quotes", "timeout"))
        quote_provider.add_quote("MSFT", "410")

        result = asyncio.run(fetcher.fetch_equities(["7203.T", "AAPL", "MSFT"]))

        assert set(result.successful) == {"7203.T", "MSFT"}
        assert isinstance(result.failed["AAPL"], ProviderUnavailableError)
        assert result.failure_count == 1

    def test_unknown_symbol_is_failure(self, fetcher):
        result = asyncio.run(fetcher.fetch_equities(["NOPE"]))

        assert isinstance(result.failed["NOPE"], TickerNotFoundError)
        assert result.success_count == 0

    def test_duplicate_keys_fetched_once(self, fetcher, quote_provider):
        quote_provider.add_quote("AAPL", "182.5", currency="USD")

        asyncio.run(fetcher.fetch_equities(["AAPL", "AAPL"]))

        assert quote_provider.calls == ["AAPL"]

    def test_empty_keys(self, fetcher, quote_provider, sleep_recorder):
        result = asyncio.run(fetcher.fetch_equities([]))

        assert result.total_count == 0
        assert quote_provider.calls == []
        assert sleep_recorder.delays == []


# =============================================================================
# BATCHING
# =============================================================================

class TestBatching:
    """Tests for batch sizing and inter-batch delays."""

    def test_pause_between_batches_only(self, quote_provider, fund_provider, sleep_recorder):
        symbols = [f"{1000 + i}.T" for i in range(12)]
        for symbol in symbols:
            quote_provider.add_quote(symbol, "1000")
        fetcher = QuoteFetcher(quote_provider, fund_provider, batch_size=5, sleep=sleep_recorder)

        result = asyncio.run(fetcher.fetch_equities(symbols))

        assert result.success_count == 12
        # 3 batches -> 2 pauses, none after the last
        assert sleep_recorder.delays == [0.2, 0.2]

    def test_single_batch_never_sleeps(self, fetcher, quote_provider, sleep_recorder):
        quote_provider.add_quote("AAPL", "182.5", currency="USD")

        asyncio.run(fetcher.fetch_equities(["AAPL"]))

        assert sleep_recorder.delays == []

    def test_fund_delay(self, quote_provider, fund_provider, sleep_recorder):
        codes = ["A1", "A2", "A3"]
        for code in codes:
            fund_provider.add_document(code, fund_page("10,000"))
        fetcher = QuoteFetcher(
            quote_provider, fund_provider, batch_size=2, fund_batch_delay=0.5, sleep=sleep_recorder
        )

        asyncio.run(fetcher.fetch_funds(codes))

        assert sleep_recorder.delays == [0.5]

    def test_keys_fetched_in_order(self, quote_provider, fund_provider, sleep_recorder):
        symbols = ["A", "B", "C", "D"]
        for symbol in symbols:
            quote_provider.add_quote(symbol, "1", currency="USD")
        fetcher = QuoteFetcher(quote_provider, fund_provider, batch_size=2, sleep=sleep_recorder)

        asyncio.run(fetcher.fetch_equities(symbols))

        assert quote_provider.calls == symbols


# =============================================================================
# FUNDS
# =============================================================================

class TestFetchFunds:
    """Tests for fetch_funds()."""

    def test_nav_extracted(self, fetcher, fund_provider):
        fund_provider.add_document("47316169", fund_page("16,120", change="+120"))

        result = asyncio.run(fetcher.fetch_funds(["47316169"]))

        nav = result.successful["47316169"]
        assert nav.price == Decimal("16120")
        assert nav.previous_close == Decimal("16000")

    def test_page_without_nav_fails(self, fetcher, fund_provider):
        fund_provider.add_document("47316169", "<html><body>メンテナンス中</body></html>")

        result = asyncio.run(fetcher.fetch_funds(["47316169"]))

        error = result.failed["47316169"]
        assert isinstance(error, NavNotFoundError)
        assert error.fund_code == "47316169"

    def test_provider_error_fails_only_that_code(self, fetcher, fund_provider):
        fund_provider.add_document("A", fund_page("10,000"))
        fund_provider.add_error("B", ProviderUnavailableError("fake_funds", "HTTP 503"))

        result = asyncio.run(fetcher.fetch_funds(["A", "B"]))

        assert set(result.successful) == {"A"}
        assert set(result.failed) == {"B"}


# =============================================================================
# FETCH BATCH
# =============================================================================

class TestFetchBatch:
    """Tests for fetch_batch() with a FetchPlan."""

    def test_expands_to_holding_symbols(self, fetcher, quote_provider, fund_provider):
        quote_provider.add_quote("1234A.T", "1500", previous_close="1480", name="Sample ETF")
        fund_provider.add_document("47316169", fund_page("16,120", change="+120"))
        holdings = [
            make_holding("1234A.T-sbi"),
            make_holding("1234A.T-rakuten"),
            make_holding("ghq-dist", category="mutual_fund"),
            make_holding("ghq-reinv", category="mutual_fund"),
        ]

        quotes = asyncio.run(fetcher.fetch_batch(SymbolResolver().build_plan(holdings)))

        assert set(quotes) == {"1234A.T-sbi", "1234A.T-rakuten", "ghq-dist", "ghq-reinv"}
        assert quotes["1234A.T-sbi"].symbol == "1234A.T-sbi"
        assert quotes["1234A.T-rakuten"].price == Decimal("1500")
        assert quotes["1234A.T-rakuten"].day_change == Decimal("20")
        assert quotes["ghq-reinv"].currency == "JPY"
        assert quotes["ghq-reinv"].name == "GHQ 分配型"
        assert all(q.source is QuoteSource.LIVE for q in quotes.values())
        # one call per key, not per holding
        assert quote_provider.calls == ["1234A.T"]
        assert fund_provider.calls == ["47316169"]

    def test_equities_fetched_before_funds(self, quote_provider, fund_provider, sleep_recorder):
        order: list[str] = []

        class Recording(type(quote_provider)):
            async def get_equity_quote(self, symbol):
                order.append("equity")
                return await super().get_equity_quote(symbol)

        equities = Recording()
        equities.add_quote("AAPL", "182.5", currency="USD")
        fund_provider.add_document("47316169", fund_page("16,120"))
        original = fund_provider.get_fund_document

        async def recording_fund(code):
            order.append("fund")
            return await original(code)

        fund_provider.get_fund_document = recording_fund
        fetcher = QuoteFetcher(equities, fund_provider, sleep=sleep_recorder)
        holdings = [make_holding("ghq-dist", category="mutual_fund"), make_holding("AAPL", currency="USD")]

        asyncio.run(fetcher.fetch_batch(SymbolResolver().build_plan(holdings)))

        assert order == ["equity", "fund"]

    def test_failed_keys_missing_from_result(self, fetcher, quote_provider):
        quote_provider.add_quote("AAPL", "182.5", currency="USD")
        holdings = [make_holding("AAPL", currency="USD"), make_holding("MSFT", currency="USD")]

        quotes = asyncio.run(fetcher.fetch_batch(SymbolResolver().build_plan(holdings)))

        assert set(quotes) == {"AAPL"}

    def test_empty_plan(self, fetcher):
        quotes = asyncio.run(fetcher.fetch_batch(SymbolResolver().build_plan([])))

        assert quotes == {}
