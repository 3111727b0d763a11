# backend/tests/services/test_yahoo_provider.py
"""
Tests for the YahooFinanceProvider.

This module tests:
- Currency mapping and Decimal conversion helpers
- Quote building from fast_info
- Error handling and classification

Note: These tests mock the yfinance library to avoid actual API calls.
"""

import asyncio
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import PropertyMock, patch

import pytest

from app.services.exceptions import (
    TickerNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
)
from app.services.market_data.yahoo import YahooFinanceProvider


def _provider() -> YahooFinanceProvider:
    """Provider with a single attempt so error tests do not back off."""
    provider = YahooFinanceProvider()
    provider.MAX_RETRY_ATTEMPTS = 1
    return provider


def _fast_info(last_price=2856.0, previous_close=2800.0, currency="JPY"):
    return SimpleNamespace(last_price=last_price, previous_close=previous_close, currency=currency)


# =============================================================================
# PROVIDER INITIALIZATION
# =============================================================================

class TestYahooProviderInit:
    """Tests for provider initialization."""

    def test_provider_name(self):
        """Provider name should be 'yahoo'."""
        assert YahooFinanceProvider().name == "yahoo"

    def test_default_timeout(self):
        assert YahooFinanceProvider()._timeout == 10

    def test_custom_timeout(self):
        assert YahooFinanceProvider(timeout=30)._timeout == 30


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:
    """Tests for currency mapping and number conversion."""

    @pytest.mark.parametrize("currency,expected", [
        ("JPY", "JPY"),
        ("jpy", "JPY"),
        ("USD", "USD"),
        ("EUR", "USD"),
        (None, "USD"),
        ("", "USD"),
    ])
    def test_map_currency(self, currency, expected):
        assert YahooFinanceProvider._map_currency(currency) == expected

    @pytest.mark.parametrize("value,expected", [
        (182.5, Decimal("182.5")),
        (2856, Decimal("2856")),
        ("147.25", Decimal("147.25")),
        (None, None),
        (float("nan"), None),
        ("abc", None),
    ])
    def test_to_decimal(self, value, expected):
        assert YahooFinanceProvider._to_decimal(value) == expected


# =============================================================================
# QUOTE FETCHING
# =============================================================================

class TestGetEquityQuote:
    """Tests for get_equity_quote() with mocked yfinance."""

    @patch('app.services.market_data.yahoo.yf')
    def test_successful_fetch(self, mock_yf):
        mock_yf.Ticker.return_value.fast_info = _fast_info()
        mock_yf.Ticker.return_value.info = {"longName": "Toyota Motor Corporation", "shortName": "TOYOTA MOTOR CORP"}

        quote = asyncio.run(_provider().get_equity_quote("7203.T"))

        assert quote.symbol == "7203.T"
        assert quote.price == Decimal("2856.0")
        assert quote.previous_close == Decimal("2800.0")
        assert quote.name == "Toyota Motor Corporation"
        assert quote.currency == "JPY"
        mock_yf.Ticker.assert_called_once_with("7203.T")

    @patch('app.services.market_data.yahoo.yf')
    def test_name_falls_back_to_short_name(self, mock_yf):
        mock_yf.Ticker.return_value.fast_info = _fast_info(182.5, 180.0, "USD")
        mock_yf.Ticker.return_value.info = {"longName": None, "shortName": "Apple Inc."}

        quote = asyncio.run(_provider().get_equity_quote("AAPL"))

        assert quote.name == "Apple Inc."

    @patch('app.services.market_data.yahoo.yf')
    def test_unreadable_info_leaves_name_empty(self, mock_yf):
        """A failing info lookup never fails the quote itself."""
        ticker = mock_yf.Ticker.return_value
        ticker.fast_info = _fast_info(182.5, 180.0, "USD")
        type(ticker).info = PropertyMock(side_effect=RuntimeError("HTTP 401"))

        quote = asyncio.run(_provider().get_equity_quote("AAPL"))

        assert quote.price == Decimal("182.5")
        assert quote.name is None

    @patch('app.services.market_data.yahoo.yf')
    def test_fetch_normalizes_input(self, mock_yf):
        mock_yf.Ticker.return_value.fast_info = _fast_info(182.5, 180.0, "USD")

        quote = asyncio.run(_provider().get_equity_quote("  aapl "))

        assert quote.symbol == "AAPL"
        mock_yf.Ticker.assert_called_once_with("AAPL")

    @patch('app.services.market_data.yahoo.yf')
    def test_missing_previous_close_uses_price(self, mock_yf):
        mock_yf.Ticker.return_value.fast_info = _fast_info(182.5, float("nan"), "USD")

        quote = asyncio.run(_provider().get_equity_quote("AAPL"))

        assert quote.previous_close == quote.price

    @pytest.mark.parametrize("last_price", [None, float("nan"), 0.0, -1.0])
    @patch('app.services.market_data.yahoo.yf')
    def test_no_price_is_not_found(self, mock_yf, last_price):
        mock_yf.Ticker.return_value.fast_info = _fast_info(last_price=last_price)

        with pytest.raises(TickerNotFoundError) as exc_info:
            asyncio.run(_provider().get_equity_quote("9999.T"))

        assert exc_info.value.ticker == "9999.T"

    @patch('app.services.market_data.yahoo.yf')
    def test_fetch_ticker_not_found_message(self, mock_yf):
        mock_yf.Ticker.side_effect = Exception("No data found, symbol may be delisted")

        with pytest.raises(TickerNotFoundError):
            asyncio.run(_provider().get_equity_quote("XXXX"))

    @patch('app.services.market_data.yahoo.yf')
    def test_fetch_rate_limit_error(self, mock_yf):
        mock_yf.Ticker.side_effect = Exception("Too Many Requests. Rate limited.")

        with pytest.raises(RateLimitError):
            asyncio.run(_provider().get_equity_quote("AAPL"))

    @patch('app.services.market_data.yahoo.yf')
    def test_fetch_network_error(self, mock_yf):
        mock_yf.Ticker.side_effect = Exception("Connection reset by peer")

        with pytest.raises(ProviderUnavailableError):
            asyncio.run(_provider().get_equity_quote("AAPL"))

    @patch('app.services.market_data.yahoo.yf')
    def test_transient_error_retried(self, mock_yf):
        """A ProviderUnavailableError is retried; the second attempt succeeds."""
        mock_yf.Ticker.side_effect = [
            Exception("Connection reset by peer"),
            SimpleNamespace(fast_info=_fast_info()),
        ]
        provider = YahooFinanceProvider()
        provider.RETRY_MIN_WAIT = 0
        provider.RETRY_MULTIPLIER = 0

        quote = asyncio.run(provider.get_equity_quote("7203.T"))

        assert quote.price == Decimal("2856.0")
        assert mock_yf.Ticker.call_count == 2

    @patch('app.services.market_data.yahoo.yf')
    def test_not_found_not_retried(self, mock_yf):
        mock_yf.Ticker.return_value.fast_info = _fast_info(last_price=None)
        provider = YahooFinanceProvider()
        provider.RETRY_MIN_WAIT = 0

        with pytest.raises(TickerNotFoundError):
            asyncio.run(provider.get_equity_quote("9999.T"))

        assert mock_yf.Ticker.call_count == 1
