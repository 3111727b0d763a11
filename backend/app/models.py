# backend/app/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Enum, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Enums help enforce data integrity at the database level
class AssetCategory(str, enum.Enum):
    DOMESTIC_STOCK = "domestic_stock"
    US_STOCK = "us_stock"  # Any foreign equity quoted in USD
    MUTUAL_FUND = "mutual_fund"
    CASH = "cash"
    BOND = "bond"
    REAL_ESTATE = "real_estate"
    CRYPTO = "crypto"
    INSURANCE = "insurance"
    PENSION = "pension"


class AccountType(str, enum.Enum):
    NISA = "nisa"
    SPECIFIC = "specific"
    GENERAL = "general"


class Currency(str, enum.Enum):
    JPY = "JPY"
    USD = "USD"


class TransactionType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class Holding(Base):
    """
    A position held in one account.

    The symbol is the canonical holding symbol, which may carry a broker
    suffix ("1234A.T-sbi") or be a fund alias ("ghq-dist"). Quote fetching
    derives its own fetch keys from it; the holding row is never modified
    by the valuation pipeline.

    Category is stored as a plain string so rows written by other tools
    with categories outside AssetCategory still load.
    """
    __tablename__ = "holdings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String)
    category: Mapped[str] = mapped_column(String(32), index=True)

    # Numeric(18, 8) supports fractional fund units and crypto quantities
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    avg_cost: Mapped[Decimal] = mapped_column(Numeric(18, 8))  # Per unit, in the holding currency
    currency: Mapped[Currency] = mapped_column(Enum(Currency), default=Currency.JPY)
    account_type: Mapped[AccountType] = mapped_column(Enum(AccountType), default=AccountType.SPECIFIC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class PriceHistory(Base):
    """
    Daily price snapshots written by the refresh job.

    One row per (symbol, date). The refresh job may run several times a day;
    later runs overwrite the row for that day. The most recent row per symbol
    is the cache tier used when live quotes are unavailable.
    """
    __tablename__ = "price_history"
    __table_args__ = (
        UniqueConstraint("symbol", "date", name="uq_price_symbol_date"),
        # "Latest price per symbol" scans by symbol then date
        Index("ix_price_history_symbol_date", "symbol", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String(64))
    price_date: Mapped[date] = mapped_column("date", Date, index=True)  # Daily data - no time component
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    currency: Mapped[Currency] = mapped_column(Enum(Currency))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )


class ExchangeRate(Base):
    """
    Daily USD/JPY rates written by the refresh job.

    Convention: usd_jpy is "1 USD = X JPY".
    """
    __tablename__ = "exchange_rates"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    rate_date: Mapped[date] = mapped_column("date", Date, unique=True, index=True)
    usd_jpy: Mapped[Decimal] = mapped_column(Numeric(18, 8))

    # Metadata
    provider: Mapped[str] = mapped_column(String(50))  # e.g., "exchangerate.host"
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )


class Transaction(Base):
    """
    Executed trades. Realized P&L is recorded by the broker on sells only.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transaction_type_date", "transaction_type", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    trade_date: Mapped[date] = mapped_column("date", Date, index=True)
    symbol: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    fees: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))
    realized_pnl: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    currency: Mapped[Currency] = mapped_column(Enum(Currency), default=Currency.JPY)


class Dividend(Base):
    __tablename__ = "dividends"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    paid_date: Mapped[date] = mapped_column("date", Date, index=True)
    symbol: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    currency: Mapped[Currency] = mapped_column(Enum(Currency), default=Currency.JPY)


class OtherAsset(Base):
    """
    Declared, non-tradable assets (cash, pensions, insurance, property).

    These have no market quote. The declared value counts towards category
    and portfolio totals as-is (converted to JPY when held in USD).
    """
    __tablename__ = "other_assets"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    asset_type: Mapped[str] = mapped_column(String(32), index=True)
    name: Mapped[str] = mapped_column(String)
    value: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    currency: Mapped[Currency] = mapped_column(Enum(Currency), default=Currency.JPY)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
