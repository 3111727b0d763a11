#!/usr/bin/env python3
# backend/scripts/seed_sample_data.py
"""
Seed a demo portfolio.

Writes holdings across every price path (Tokyo equities with and without
a broker suffix, a US equity, mapped funds), declared assets, this year's
trades and dividends, and yesterday's prices so the cache tier has
something to fall back to.

Idempotent: tables that already hold rows are skipped.

    python backend/scripts/seed_sample_data.py
"""
import logging
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Setup path to import app modules
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import select

from app.database import SessionLocal, engine
from app.models import (
    AccountType,
    AssetCategory,
    Base,
    Currency,
    Dividend,
    ExchangeRate,
    Holding,
    OtherAsset,
    PriceHistory,
    Transaction,
    TransactionType,
)
from app.utils import setup_logging
from app.utils.formatting import format_currency

logger = logging.getLogger(__name__)

HOLDINGS = [
    ("7203.T", "トヨタ自動車", AssetCategory.DOMESTIC_STOCK, "100", "2400", Currency.JPY, AccountType.SPECIFIC),
    ("1475.T-sbi", "iシェアーズ・コア TOPIX ETF", AssetCategory.DOMESTIC_STOCK, "300", "2150", Currency.JPY, AccountType.NISA),
    ("AAPL", "Apple Inc.", AssetCategory.US_STOCK, "50", "150", Currency.USD, AccountType.SPECIFIC),
    ("VT", "Vanguard Total World Stock ETF", AssetCategory.US_STOCK, "40", "98.5", Currency.USD, AccountType.NISA),
    ("ghq-dist", "GHQ 分配型", AssetCategory.MUTUAL_FUND, "85.2", "14350", Currency.JPY, AccountType.SPECIFIC),
    ("ghq-reinv", "GHQ 再投資型", AssetCategory.MUTUAL_FUND, "40", "14800", Currency.JPY, AccountType.NISA),
    ("emaxis-ac-nisa", "eMAXIS Slim 全世界株式", AssetCategory.MUTUAL_FUND, "120.5", "21000", Currency.JPY, AccountType.NISA),
]

OTHER_ASSETS = [
    (AssetCategory.CASH, "普通預金", "1500000", Currency.JPY),
    (AssetCategory.CASH, "USD 預金", "8000", Currency.USD),
    (AssetCategory.PENSION, "iDeCo", "3200000", Currency.JPY),
    (AssetCategory.INSURANCE, "変額保険 解約返戻金", "640000", Currency.JPY),
]

# Yesterday's closes for the cache tier
CACHED_PRICES = {
    "7203.T": ("2830", Currency.JPY),
    "1475.T-sbi": ("2510", Currency.JPY),
    "AAPL": ("181.2", Currency.USD),
    "VT": ("108.9", Currency.USD),
    "ghq-dist": ("16120", Currency.JPY),
    "ghq-reinv": ("16120", Currency.JPY),
}


def _is_empty(db, model) -> bool:
    return db.scalars(select(model).limit(1)).first() is None


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    today = date.today()
    yesterday = today - timedelta(days=1)

    with SessionLocal() as db:
        try:
            logger.info("Starting database seeding")

            if _is_empty(db, Holding):
                for symbol, name, category, qty, cost, currency, account in HOLDINGS:
                    db.add(Holding(
                        symbol=symbol,
                        name=name,
                        category=category.value,
                        quantity=Decimal(qty),
                        avg_cost=Decimal(cost),
                        currency=currency,
                        account_type=account,
                    ))
                    cost_basis = Decimal(qty) * Decimal(cost)
                    logger.info(f"Holding {symbol}: cost basis {format_currency(cost_basis, currency)}")
            else:
                logger.info("Holdings exist, skipping")

            if _is_empty(db, OtherAsset):
                for asset_type, name, value, currency in OTHER_ASSETS:
                    db.add(OtherAsset(
                        asset_type=asset_type.value,
                        name=name,
                        value=Decimal(value),
                        currency=currency,
                    ))
                    logger.info(f"Other asset {name}: {format_currency(Decimal(value), currency)}")

            if _is_empty(db, Transaction):
                db.add_all([
                    Transaction(
                        trade_date=date(today.year, 1, 10),
                        symbol="7203.T",
                        name="トヨタ自動車",
                        transaction_type=TransactionType.BUY,
                        quantity=Decimal("100"),
                        price=Decimal("2400"),
                        fees=Decimal("0"),
                        currency=Currency.JPY,
                    ),
                    Transaction(
                        trade_date=date(today.year, 1, 20),
                        symbol="MSFT",
                        name="Microsoft Corp.",
                        transaction_type=TransactionType.SELL,
                        quantity=Decimal("10"),
                        price=Decimal("390"),
                        fees=Decimal("2"),
                        realized_pnl=Decimal("1250"),
                        currency=Currency.USD,
                    ),
                ])
                logger.info(f"Created transactions (realized {format_currency(Decimal('1250'), 'USD')})")

            if _is_empty(db, Dividend):
                db.add(Dividend(
                    paid_date=date(today.year, 1, 25),
                    symbol="7203.T",
                    name="トヨタ自動車",
                    amount=Decimal("3000"),
                    currency=Currency.JPY,
                ))
                logger.info("Created dividends")

            if _is_empty(db, PriceHistory):
                for symbol, (price, currency) in CACHED_PRICES.items():
                    db.add(PriceHistory(
                        symbol=symbol,
                        price_date=yesterday,
                        price=Decimal(price),
                        currency=currency,
                    ))
                logger.info(f"Cached {len(CACHED_PRICES)} prices for {yesterday}")

            if _is_empty(db, ExchangeRate):
                db.add(ExchangeRate(rate_date=yesterday, usd_jpy=Decimal("149.85"), provider="seed"))

            db.commit()
            logger.info("Seeding complete")

        except Exception as e:
            logger.error(f"Seeding failed: {e}")
            db.rollback()
            raise


if __name__ == "__main__":
    setup_logging()
    seed()
