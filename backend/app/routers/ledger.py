# backend/app/routers/ledger.py
"""
Stored holdings and transactions.

- GET /holdings - Holdings as recorded, without prices
- GET /transactions - Trades filtered by year and type, with per-currency
  totals of realized P&L (sells) and fees

Both endpoints only read the store; a store failure answers 500 through
the global handler.
"""

import logging
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from app.dependencies import get_ledger_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_LEDGER
from app.schemas.ledger import (
    HoldingListResponse,
    StoredHoldingResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionSummaryResponse,
)
from app.services.ledger_service import LedgerService, TransactionListing
from app.services.records import TransactionRecord

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    tags=["Ledger"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_transaction(transaction: TransactionRecord) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        date=transaction.date,
        symbol=transaction.symbol,
        name=transaction.name,
        type=transaction.transaction_type,
        quantity=transaction.quantity,
        price=transaction.price,
        fees=transaction.fees,
        realized_pnl=transaction.realized_pnl,
        currency=transaction.currency,
    )


def _map_listing(listing: TransactionListing) -> TransactionListResponse:
    return TransactionListResponse(
        transactions=[_map_transaction(t) for t in listing.transactions],
        summary=TransactionSummaryResponse.model_validate(listing.summary),
        updated_at=listing.updated_at,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/holdings",
    response_model=HoldingListResponse,
    summary="List stored holdings",
)
@limiter.limit(RATE_LIMIT_LEDGER)
def list_holdings(
        request: Request,  # Required for rate limiting
        service: LedgerService = Depends(get_ledger_service),
):
    """Holdings with quantity and average cost, in store order."""
    holdings = service.list_holdings()

    return HoldingListResponse(
        holdings=[StoredHoldingResponse.model_validate(h) for h in holdings],
        count=len(holdings),
        updated_at=datetime.now(timezone.utc),
    )


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="List transactions",
    response_description="Transactions, newest first, with totals",
)
@limiter.limit(RATE_LIMIT_LEDGER)
def list_transactions(
        request: Request,  # Required for rate limiting
        year: int | None = Query(None, ge=1900, le=2100, description="Calendar year of the trade"),
        transaction_type: Literal["buy", "sell"] | None = Query(None, alias="type"),
        service: LedgerService = Depends(get_ledger_service),
):
    """
    Transactions of one year and/or type.

    **Summary** covers the listed transactions only:
    - realized_pnl: sum over sells, per currency
    - fees: sum over all listed trades, per currency
    - sell_count / buy_count
    """
    listing = service.list_transactions(year=year, transaction_type=transaction_type)
    return _map_listing(listing)
