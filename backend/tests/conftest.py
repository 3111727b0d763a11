# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Test environment (in-memory SQLite, rate limiting off)
- Database fixtures (in-memory SQLite)
- In-memory PortfolioStore fake
- Fake quote, fund page and FX providers
- Sample data factories
"""

import itertools
import os

# Must be set before any app module reads settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.services.exceptions import (
    FXProviderError,
    StoreUnavailableError,
    TickerNotFoundError,
)
from app.services.fx_rate_service import ExchangeRateResult
from app.services.market_data.base import EquityQuote, FundDocumentProvider, QuoteProvider
from app.services.records import (
    DividendRecord,
    HoldingRecord,
    OtherAssetRecord,
    StoredExchangeRate,
    StoredQuote,
    TransactionRecord,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class FakePortfolioStore:
    """
    In-memory PortfolioStore.

    Each read can be made to fail with StoreUnavailableError by adding its
    operation name to fail_operations. Appends are recorded in order.
    """

    def __init__(
            self,
            holdings: list[HoldingRecord] | None = None,
            quotes: dict[str, StoredQuote] | None = None,
            other_assets: list[OtherAssetRecord] | None = None,
            transactions: list[TransactionRecord] | None = None,
            dividends: list[DividendRecord] | None = None,
    ):
        self.holdings = list(holdings or [])
        self.quotes = dict(quotes or {})
        self.other_assets = list(other_assets or [])
        self.transactions = list(transactions or [])
        self.dividends = list(dividends or [])
        self.exchange_rates: list[StoredExchangeRate] = []
        self.quote_snapshots: list[tuple[str, Decimal, str, date]] = []
        self.fail_operations: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            raise StoreUnavailableError(operation, "connection refused")

    def read_holdings(self) -> list[HoldingRecord]:
        self._check("read_holdings")
        return list(self.holdings)

    def read_latest_quotes(self) -> dict[str, StoredQuote]:
        self._check("read_latest_quotes")
        return dict(self.quotes)

    def read_other_assets(self) -> list[OtherAssetRecord]:
        self._check("read_other_assets")
        return list(self.other_assets)

    def read_transactions(self, year: int | None = None) -> list[TransactionRecord]:
        self._check("read_transactions")
        return [t for t in self.transactions if year is None or t.date.year == year]

    def read_dividends(self, year: int | None = None) -> list[DividendRecord]:
        self._check("read_dividends")
        return [d for d in self.dividends if year is None or d.date.year == year]

    def read_latest_exchange_rate(self) -> StoredExchangeRate | None:
        self._check("read_latest_exchange_rate")
        return self.exchange_rates[-1] if self.exchange_rates else None

    def append_quote_snapshot(self, symbol, price, currency, snapshot_date) -> None:
        self._check("append_quote_snapshot")
        self.quote_snapshots.append((symbol, price, currency, snapshot_date))

    def append_exchange_rate(self, rate, rate_date, provider) -> None:
        self._check("append_exchange_rate")
        self.exchange_rates.append(StoredExchangeRate(rate=rate, date=rate_date, provider=provider))


@pytest.fixture
def fake_store() -> FakePortfolioStore:
    return FakePortfolioStore()


# =============================================================================
# FAKE PROVIDERS
# =============================================================================

class FakeQuoteProvider(QuoteProvider):
    """
    QuoteProvider answering from configured quotes.

    Unknown symbols raise TickerNotFoundError. Every call is recorded.
    """

    def __init__(self, quotes: dict[str, EquityQuote] | None = None):
        self._quotes = dict(quotes or {})
        self._errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "fake_quotes"

    def add_quote(self, symbol: str, price: str, previous_close: str | None = None,
                  currency: str = "JPY", name: str | None = None) -> None:
        self._quotes[symbol] = make_equity_quote(symbol, price, previous_close, currency, name)

    def add_error(self, symbol: str, error: Exception) -> None:
        self._errors[symbol] = error

    async def get_equity_quote(self, symbol: str) -> EquityQuote:
        self.calls.append(symbol)
        if symbol in self._errors:
            raise self._errors[symbol]
        if symbol in self._quotes:
            return self._quotes[symbol]
        raise TickerNotFoundError(ticker=symbol, provider=self.name)


class FakeFundProvider(FundDocumentProvider):
    """FundDocumentProvider serving configured page markup."""

    def __init__(self, documents: dict[str, str] | None = None):
        self._documents = dict(documents or {})
        self._errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "fake_funds"

    def add_document(self, fund_code: str, document: str) -> None:
        self._documents[fund_code] = document

    def add_error(self, fund_code: str, error: Exception) -> None:
        self._errors[fund_code] = error

    async def get_fund_document(self, fund_code: str) -> str:
        self.calls.append(fund_code)
        if fund_code in self._errors:
            raise self._errors[fund_code]
        if fund_code in self._documents:
            return self._documents[fund_code]
        raise TickerNotFoundError(ticker=fund_code, provider=self.name)


class FakeRateProvider:
    """Exchange-rate provider returning a fixed rate, or failing while rate is None."""

    def __init__(self, name: str, rate: str | None = None, as_of: date = date(2024, 1, 15)):
        self._name = name
        self.rate = rate
        self._as_of = as_of
        self.call_count = 0

    @property
    def name(self) -> str:
        return self._name

    async def get_usd_jpy_rate(self) -> ExchangeRateResult:
        self.call_count += 1
        if self.rate is None:
            raise FXProviderError(self._name, "HTTP 503")
        return ExchangeRateResult(rate=Decimal(self.rate), as_of=self._as_of, provider=self._name)


class SleepRecorder:
    """Awaitable replacement for asyncio.sleep that records delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def quote_provider() -> FakeQuoteProvider:
    return FakeQuoteProvider()


@pytest.fixture
def fund_provider() -> FakeFundProvider:
    return FakeFundProvider()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

_holding_ids = itertools.count(1)


def make_holding(
        symbol: str = "7203.T",
        quantity: str = "100",
        avg_cost: str = "2400",
        currency: str = "JPY",
        category: str = "domestic_stock",
        account_type: str = "specific",
        name: str | None = None,
        id: int | None = None,
) -> HoldingRecord:
    """Factory function for creating HoldingRecord test data."""
    return HoldingRecord(
        id=id if id is not None else next(_holding_ids),
        symbol=symbol,
        name=name or symbol,
        category=category,
        quantity=Decimal(quantity),
        avg_cost=Decimal(avg_cost),
        currency=currency,
        account_type=account_type,
    )


def make_equity_quote(
        symbol: str,
        price: str,
        previous_close: str | None = None,
        currency: str = "JPY",
        name: str | None = None,
) -> EquityQuote:
    return EquityQuote(
        symbol=symbol,
        price=Decimal(price),
        previous_close=Decimal(previous_close if previous_close is not None else price),
        currency=currency,
        name=name,
    )


def fund_page(
        nav: str,
        change: str | None = None,
        title: str = "GHQ 分配型【47316169】：基準価額・投資信託情報 - Yahoo!ファイナンス",
) -> str:
    """Minimal fund page markup in the layout the extractor expects."""
    change_html = f"<dt>前日比</dt><dd>{change}(+0.75%)</dd>" if change is not None else ""
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<dl><dt>基準価額</dt><dd><span>{nav}</span>円</dd>{change_html}</dl>"
        f"</body></html>"
    )
