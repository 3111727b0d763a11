# tests/routers/test_prices_api.py
"""
Integration tests for GET /prices.

These tests verify:
- Single-symbol lookups and their error mapping (404, 429, 503)
- Batched lookups with partial failures
- Query parameter validation (400)
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_equity_provider, get_quote_fetcher
from app.main import app
from app.routers.prices import MAX_BATCH_SYMBOLS
from app.services.exceptions import ProviderUnavailableError, RateLimitError
from app.services.market_data.fetcher import QuoteFetcher


@pytest.fixture
def client(quote_provider, fund_provider, sleep_recorder):
    """TestClient with the equity provider replaced by a fake."""
    fetcher = QuoteFetcher(quote_provider, fund_provider, sleep=sleep_recorder)
    app.dependency_overrides[get_equity_provider] = lambda: quote_provider
    app.dependency_overrides[get_quote_fetcher] = lambda: fetcher

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# SINGLE SYMBOL
# =============================================================================

class TestSinglePrice:
    """Tests for GET /prices?symbol=..."""

    def test_quote(self, client, quote_provider):
        quote_provider.add_quote("AAPL", "182.5", previous_close="180", currency="USD", name="Apple Inc.")

        response = client.get("/prices", params={"symbol": "AAPL"})

        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "AAPL"
        assert Decimal(data["price"]) == Decimal("182.5")
        assert Decimal(data["change"]) == Decimal("2.5")
        assert Decimal(data["previous_close"]) == Decimal("180")
        assert data["currency"] == "USD"
        assert data["name"] == "Apple Inc."

    def test_symbol_is_trimmed(self, client, quote_provider):
        quote_provider.add_quote("7203.T", "2856")

        response = client.get("/prices", params={"symbol": " 7203.T "})

        assert response.status_code == 200
        assert quote_provider.calls == ["7203.T"]

    def test_unknown_symbol_404(self, client):
        response = client.get("/prices", params={"symbol": "NOPE"})

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "TickerNotFoundError"
        assert data["details"] == {"ticker": "NOPE"}

    def test_provider_unavailable_503(self, client, quote_provider):
        quote_provider.add_error("AAPL", ProviderUnavailableError("fake_quotes", "timeout"))

        response = client.get("/prices", params={"symbol": "AAPL"})

        assert response.status_code == 503
        assert response.json()["error"] == "ProviderUnavailableError"

    def test_upstream_rate_limit_429(self, client, quote_provider):
        quote_provider.add_error("AAPL", RateLimitError("fake_quotes", retry_after=60))

        response = client.get("/prices", params={"symbol": "AAPL"})

        assert response.status_code == 429
        assert response.json()["details"] == {"retry_after": 60}


# =============================================================================
# BATCH
# =============================================================================

class TestBatchPrices:
    """Tests for GET /prices?symbols=..."""

    def test_partial_results(self, client, quote_provider):
        quote_provider.add_quote("AAPL", "182.5", currency="USD")
        quote_provider.add_quote("7203.T", "2856")

        response = client.get("/prices", params={"symbols": "AAPL, 7203.T,NOPE"})

        assert response.status_code == 200
        data = response.json()
        assert set(data["prices"]) == {"AAPL", "7203.T"}
        assert set(data["failed"]) == {"NOPE"}
        assert Decimal(data["prices"]["7203.T"]["price"]) == Decimal("2856")

    def test_all_failed_is_still_200(self, client):
        response = client.get("/prices", params={"symbols": "X1,X2"})

        assert response.status_code == 200
        assert response.json()["prices"] == {}
        assert set(response.json()["failed"]) == {"X1", "X2"}

    def test_duplicates_fetched_once(self, client, quote_provider):
        quote_provider.add_quote("AAPL", "182.5", currency="USD")

        client.get("/prices", params={"symbols": "AAPL,AAPL"})

        assert quote_provider.calls == ["AAPL"]


# =============================================================================
# VALIDATION
# =============================================================================

class TestPricesValidation:
    """Tests for query parameter validation."""

    def test_no_parameters(self, client):
        response = client.get("/prices")

        assert response.status_code == 400
        assert response.json()["error"] == "BadRequestError"

    def test_empty_symbol_list(self, client):
        response = client.get("/prices", params={"symbols": " , ,"})

        assert response.status_code == 400

    def test_too_many_symbols(self, client):
        symbols = ",".join(f"S{i}" for i in range(MAX_BATCH_SYMBOLS + 1))

        response = client.get("/prices", params={"symbols": symbols})

        assert response.status_code == 400
        assert str(MAX_BATCH_SYMBOLS) in response.json()["message"]
