# backend/app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- errors: Error response formats
- portfolio: Portfolio snapshot (holdings, categories, summary)
- ledger: Stored holdings and transactions
- prices: Live price lookups and refresh job results

Usage:
    from app.schemas import PortfolioResponse
    from app.schemas import PriceResponse, BatchPriceResponse
    from app.schemas import ErrorDetail
"""

from app.schemas.errors import (
    ErrorDetail,
    ValidationErrorDetail,
)
from app.schemas.ledger import (
    HoldingListResponse,
    StoredHoldingResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionSummaryResponse,
)
from app.schemas.portfolio import (
    CategorySummaryResponse,
    ExchangeRateInfo,
    HoldingResponse,
    PortfolioResponse,
    PortfolioSummaryResponse,
)
from app.schemas.prices import (
    BatchPriceResponse,
    PriceResponse,
    RefreshResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Portfolio
    "HoldingResponse",
    "CategorySummaryResponse",
    "PortfolioSummaryResponse",
    "ExchangeRateInfo",
    "PortfolioResponse",
    # Ledger
    "StoredHoldingResponse",
    "HoldingListResponse",
    "TransactionResponse",
    "TransactionSummaryResponse",
    "TransactionListResponse",
    # Prices
    "PriceResponse",
    "BatchPriceResponse",
    "RefreshResponse",
]
