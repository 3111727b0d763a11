# backend/app/services/ledger_service.py
"""
Ledger Service - stored holdings and trades as recorded.

Unlike the snapshot, nothing here touches a provider: holdings are listed
with their stored cost data, transactions with the broker's figures.
Store failures propagate and surface as 500 through the global handler.

Usage:
    service = LedgerService(store)
    holdings = service.list_holdings()
    listing = service.list_transactions(year=2024, transaction_type="sell")
    listing.summary.sell_count
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.services.protocols import PortfolioStore
from app.services.records import HoldingRecord, TransactionRecord
from app.services.valuation import TransactionSummary, TransactionSummaryCalculator

logger = logging.getLogger(__name__)


@dataclass
class TransactionListing:
    """Filtered transactions, newest first, with their totals."""

    transactions: list[TransactionRecord]
    summary: TransactionSummary
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LedgerService:
    """
    Read-only views over the portfolio store.

    Args:
        store: Portfolio store
        summary_calculator: Totals for transaction listings
    """

    def __init__(
            self,
            store: PortfolioStore,
            summary_calculator: TransactionSummaryCalculator | None = None,
    ) -> None:
        self._store = store
        self._summary_calculator = summary_calculator or TransactionSummaryCalculator()

    def list_holdings(self) -> list[HoldingRecord]:
        """
        Raises:
            StoreUnavailableError: Holdings could not be read
        """
        return list(self._store.read_holdings())

    def list_transactions(
            self,
            year: int | None = None,
            transaction_type: str | None = None,
    ) -> TransactionListing:
        """
        Transactions of a year and/or type, newest first.

        The summary covers exactly the listed transactions.

        Raises:
            StoreUnavailableError: Transactions could not be read
        """
        transactions = [
            t for t in self._store.read_transactions(year)
            if transaction_type is None or t.transaction_type == transaction_type
        ]
        transactions.sort(key=lambda t: t.date, reverse=True)

        logger.debug(
            f"Listing {len(transactions)} transactions (year={year}, type={transaction_type})"
        )
        return TransactionListing(
            transactions=transactions,
            summary=self._summary_calculator.calculate(transactions),
        )
