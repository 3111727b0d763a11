# backend/app/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- SqlPortfolioStore satisfies PortfolioStore without inheriting from it
- Test fakes work without explicit inheritance
- Clear documentation of required interfaces
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Protocol, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.records import (
        DividendRecord,
        HoldingRecord,
        OtherAssetRecord,
        StoredExchangeRate,
        StoredQuote,
        TransactionRecord,
    )


class PortfolioStore(Protocol):
    """
    Read/append interface to the persistence layer.

    Every method may raise StoreUnavailableError. Reads return records
    detached from any session; appends keep daily granularity (a second
    append for the same key and date replaces the first).
    """

    def read_holdings(self) -> Sequence[HoldingRecord]:
        ...

    def read_latest_quotes(self) -> dict[str, StoredQuote]:
        """Latest persisted price per symbol (by date)."""
        ...

    def append_quote_snapshot(
        self,
        symbol: str,
        price: Decimal,
        currency: str,
        snapshot_date: date,
    ) -> None:
        ...

    def append_exchange_rate(
        self,
        rate: Decimal,
        rate_date: date,
        provider: str,
    ) -> None:
        ...

    def read_other_assets(self) -> Sequence[OtherAssetRecord]:
        ...

    def read_transactions(self, year: int | None = None) -> Sequence[TransactionRecord]:
        ...

    def read_dividends(self, year: int | None = None) -> Sequence[DividendRecord]:
        ...

    def read_latest_exchange_rate(self) -> StoredExchangeRate | None:
        ...
