# backend/app/schemas/ledger.py
"""
Pydantic schemas for stored holdings and transactions.

These schemas handle:
- Holdings as recorded (GET /holdings)
- Transactions with per-currency totals (GET /transactions)
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# HOLDING SCHEMAS
# =============================================================================

class StoredHoldingResponse(BaseModel):
    """A holding as stored, without prices."""

    model_config = ConfigDict(from_attributes=True)

    id: int | str
    symbol: str
    name: str
    category: str
    quantity: Decimal
    avg_cost: Decimal = Field(..., description="Average cost per unit, holding currency")
    currency: str
    account_type: str
    created_at: dt.datetime | None = None


class HoldingListResponse(BaseModel):
    holdings: list[StoredHoldingResponse] = Field(default_factory=list)
    count: int
    updated_at: dt.datetime


# =============================================================================
# TRANSACTION SCHEMAS
# =============================================================================

class TransactionResponse(BaseModel):
    """An executed trade."""

    id: int | str
    date: dt.date
    symbol: str
    name: str
    type: str = Field(..., description="buy or sell")
    quantity: Decimal
    price: Decimal
    fees: Decimal
    realized_pnl: Decimal | None = Field(None, description="Sells only, transaction currency")
    currency: str


class TransactionSummaryResponse(BaseModel):
    """Totals over the listed transactions, keyed by currency."""

    model_config = ConfigDict(from_attributes=True)

    realized_pnl: dict[str, Decimal] = Field(
        default_factory=dict, description="Realized P&L of sells per currency"
    )
    fees: dict[str, Decimal] = Field(default_factory=dict, description="Fees per currency")
    sell_count: int
    buy_count: int


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse] = Field(default_factory=list)
    summary: TransactionSummaryResponse
    updated_at: dt.datetime
