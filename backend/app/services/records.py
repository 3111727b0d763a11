# backend/app/services/records.py
"""
Plain records read from the portfolio store.

These are what the PortfolioStore protocol hands to the services. They are
detached from SQLAlchemy (no sessions, no lazy loading) so the quote and
valuation pipeline can run against any store implementation, including
the in-memory fakes used in tests.

Design Principles:
- Immutable (frozen=True)
- Decimal for every amount
- Currency is the plain code ("JPY" or "USD")
- Category is the plain key ("us_stock", ...), unknown keys are allowed
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class HoldingRecord:
    """
    A position as stored.

    Attributes:
        id: Store identifier
        symbol: Canonical holding symbol (may carry a broker suffix)
        name: Display name
        category: Asset category key
        quantity: Units held (>= 0)
        avg_cost: Average cost per unit in the holding currency (>= 0)
        currency: "JPY" or "USD"
        account_type: "nisa", "specific" or "general"
        created_at: When the holding was recorded
    """

    id: int | str
    symbol: str
    name: str
    category: str
    quantity: Decimal
    avg_cost: Decimal
    currency: str = "JPY"
    account_type: str = "specific"
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"quantity must be >= 0 for {self.symbol}, got {self.quantity}")
        if self.avg_cost < 0:
            raise ValueError(f"avg_cost must be >= 0 for {self.symbol}, got {self.avg_cost}")


@dataclass(frozen=True)
class StoredQuote:
    """Most recent persisted price for a symbol."""

    symbol: str
    price: Decimal
    currency: str
    date: date


@dataclass(frozen=True)
class StoredExchangeRate:
    """Most recent persisted USD/JPY rate."""

    rate: Decimal
    date: date
    provider: str


@dataclass(frozen=True)
class OtherAssetRecord:
    """A declared, non-tradable asset valued at its stated amount."""

    id: int | str
    asset_type: str
    name: str
    value: Decimal
    currency: str = "JPY"
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TransactionRecord:
    """
    An executed trade.

    realized_pnl is in the transaction currency and is only meaningful on
    sells; buys carry None.
    """

    id: int | str
    date: date
    symbol: str
    name: str
    transaction_type: str
    quantity: Decimal
    price: Decimal
    fees: Decimal = Decimal("0")
    realized_pnl: Decimal | None = None
    currency: str = "JPY"

    @property
    def is_sell(self) -> bool:
        return self.transaction_type == "sell"


@dataclass(frozen=True)
class DividendRecord:
    id: int | str
    date: date
    symbol: str
    name: str
    amount: Decimal
    currency: str = "JPY"
