# backend/app/services/store.py
"""
SQLAlchemy-backed PortfolioStore.

Each store call opens one short session from the injected factory, does
its work, and closes it. Rows are turned into detached records before the
session closes, so callers never touch ORM objects.

Error mapping:
    Any SQLAlchemyError (connection refused, missing table, lock timeout)
    becomes StoreUnavailableError. Callers decide whether that is fatal:
    it is only when reading holdings for a portfolio request.

Daily granularity:
    append_quote_snapshot and append_exchange_rate upsert on their date.
    Running the refresh job twice in one day leaves one row, holding the
    later value.

Usage:
    from app.database import SessionLocal

    store = SqlPortfolioStore(SessionLocal)
    holdings = store.read_holdings()
"""

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import TypeVar

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import (
    Currency,
    Dividend,
    ExchangeRate,
    Holding,
    OtherAsset,
    PriceHistory,
    Transaction,
)
from app.services.exceptions import StoreUnavailableError
from app.services.records import (
    DividendRecord,
    HoldingRecord,
    OtherAssetRecord,
    StoredExchangeRate,
    StoredQuote,
    TransactionRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _code(value) -> str:
    """Enum member or plain string → plain string."""
    return getattr(value, "value", value)


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


class SqlPortfolioStore:
    """
    PortfolioStore over the SQLAlchemy models in app.models.

    Args:
        session_factory: Callable returning a new Session (e.g. SessionLocal)
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    # =========================================================================
    # READS
    # =========================================================================

    def read_holdings(self) -> list[HoldingRecord]:
        def work(session: Session) -> list[HoldingRecord]:
            rows = session.scalars(select(Holding).order_by(Holding.id)).all()
            return [
                HoldingRecord(
                    id=row.id,
                    symbol=row.symbol,
                    name=row.name,
                    category=row.category,
                    quantity=row.quantity,
                    avg_cost=row.avg_cost,
                    currency=_code(row.currency),
                    account_type=_code(row.account_type),
                    created_at=row.created_at,
                )
                for row in rows
            ]

        return self._run("read_holdings", work)

    def read_latest_quotes(self) -> dict[str, StoredQuote]:
        """Latest persisted price per symbol."""

        def work(session: Session) -> dict[str, StoredQuote]:
            latest = (
                select(
                    PriceHistory.symbol,
                    func.max(PriceHistory.price_date).label("max_date"),
                )
                .group_by(PriceHistory.symbol)
                .subquery()
            )
            stmt = select(PriceHistory).join(
                latest,
                and_(
                    PriceHistory.symbol == latest.c.symbol,
                    PriceHistory.price_date == latest.c.max_date,
                ),
            )
            return {
                row.symbol: StoredQuote(
                    symbol=row.symbol,
                    price=row.price,
                    currency=_code(row.currency),
                    date=row.price_date,
                )
                for row in session.scalars(stmt).all()
            }

        return self._run("read_latest_quotes", work)

    def read_latest_exchange_rate(self) -> StoredExchangeRate | None:
        def work(session: Session) -> StoredExchangeRate | None:
            row = session.scalars(
                select(ExchangeRate).order_by(ExchangeRate.rate_date.desc()).limit(1)
            ).first()
            if row is None:
                return None
            return StoredExchangeRate(rate=row.usd_jpy, date=row.rate_date, provider=row.provider)

        return self._run("read_latest_exchange_rate", work)

    def read_other_assets(self) -> list[OtherAssetRecord]:
        def work(session: Session) -> list[OtherAssetRecord]:
            rows = session.scalars(select(OtherAsset).order_by(OtherAsset.id)).all()
            return [
                OtherAssetRecord(
                    id=row.id,
                    asset_type=row.asset_type,
                    name=row.name,
                    value=row.value,
                    currency=_code(row.currency),
                    updated_at=row.updated_at,
                )
                for row in rows
            ]

        return self._run("read_other_assets", work)

    def read_transactions(self, year: int | None = None) -> list[TransactionRecord]:
        def work(session: Session) -> list[TransactionRecord]:
            stmt = select(Transaction).order_by(Transaction.trade_date, Transaction.id)
            if year is not None:
                start, end = _year_bounds(year)
                stmt = stmt.where(Transaction.trade_date.between(start, end))
            return [
                TransactionRecord(
                    id=row.id,
                    date=row.trade_date,
                    symbol=row.symbol,
                    name=row.name,
                    transaction_type=_code(row.transaction_type),
                    quantity=row.quantity,
                    price=row.price,
                    fees=row.fees,
                    realized_pnl=row.realized_pnl,
                    currency=_code(row.currency),
                )
                for row in session.scalars(stmt).all()
            ]

        return self._run("read_transactions", work)

    def read_dividends(self, year: int | None = None) -> list[DividendRecord]:
        def work(session: Session) -> list[DividendRecord]:
            stmt = select(Dividend).order_by(Dividend.paid_date, Dividend.id)
            if year is not None:
                start, end = _year_bounds(year)
                stmt = stmt.where(Dividend.paid_date.between(start, end))
            return [
                DividendRecord(
                    id=row.id,
                    date=row.paid_date,
                    symbol=row.symbol,
                    name=row.name,
                    amount=row.amount,
                    currency=_code(row.currency),
                )
                for row in session.scalars(stmt).all()
            ]

        return self._run("read_dividends", work)

    # =========================================================================
    # APPENDS
    # =========================================================================

    def append_quote_snapshot(
            self,
            symbol: str,
            price: Decimal,
            currency: str,
            snapshot_date: date,
    ) -> None:
        def work(session: Session) -> None:
            row = session.scalars(
                select(PriceHistory).where(
                    PriceHistory.symbol == symbol,
                    PriceHistory.price_date == snapshot_date,
                )
            ).first()
            if row is None:
                session.add(PriceHistory(
                    symbol=symbol,
                    price_date=snapshot_date,
                    price=price,
                    currency=Currency(_code(currency)),
                ))
            else:
                row.price = price
                row.currency = Currency(_code(currency))

        self._run("append_quote_snapshot", work, commit=True)

    def append_exchange_rate(
            self,
            rate: Decimal,
            rate_date: date,
            provider: str,
    ) -> None:
        def work(session: Session) -> None:
            row = session.scalars(
                select(ExchangeRate).where(ExchangeRate.rate_date == rate_date)
            ).first()
            if row is None:
                session.add(ExchangeRate(rate_date=rate_date, usd_jpy=rate, provider=provider))
            else:
                row.usd_jpy = rate
                row.provider = provider

        self._run("append_exchange_rate", work, commit=True)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run(
            self,
            operation: str,
            work: Callable[[Session], T],
            commit: bool = False,
    ) -> T:
        try:
            with self._session_factory() as session:
                result = work(session)
                if commit:
                    session.commit()
                return result
        except SQLAlchemyError as e:
            logger.error(f"Store operation {operation} failed: {e}")
            raise StoreUnavailableError(operation, str(e)) from e
