# backend/app/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Reach persistence only through the PortfolioStore protocol
- Are easily testable via dependency injection

Usage:
    from app.services import PortfolioSnapshotService
    from app.services import PriceRefreshService
    from app.services import (
        StoreUnavailableError,
        TickerNotFoundError,
    )

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Fund codes, category table, tags
    ├── protocols.py                 # PortfolioStore interface
    ├── records.py                   # Detached store records
    ├── store.py                     # SQLAlchemy PortfolioStore
    ├── symbol_resolution.py         # Symbol → fetch key planning
    ├── quote_resolution.py          # Live → cache → cost-basis fallback
    ├── fx_rate_service.py           # USD/JPY provider chain
    ├── portfolio_service.py         # Snapshot and refresh workflows
    ├── market_data/                 # Market data package
    │   ├── base.py                  # Provider interfaces and quote types
    │   ├── yahoo.py                 # Yahoo Finance equities
    │   ├── yahoo_japan.py           # Yahoo! Finance Japan fund pages
    │   ├── nav_extractor.py         # NAV extraction cascade
    │   └── fetcher.py               # Batched fetch orchestration
    └── valuation/                   # Valuation engine
        ├── service.py               # ValuationEngine
        ├── types.py                 # Valuation data types
        └── calculators.py           # Point-in-time calculations
"""

from app.services.exceptions import (
    FXProviderError,
    FXRateError,
    MarketDataError,
    NavNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    StoreError,
    StoreUnavailableError,
    TickerNotFoundError,
    ValidationError,
)
from app.services.fx_rate_service import (
    ExchangeRateHostProvider,
    ExchangeRateResolver,
    ExchangeRateResult,
    FrankfurterProvider,
)
from app.services.portfolio_service import (
    PortfolioSnapshot,
    PortfolioSnapshotService,
    PriceRefreshService,
    RefreshResult,
)
from app.services.quote_resolution import PriceTier, QuoteResolution, QuoteResolver
from app.services.store import SqlPortfolioStore
from app.services.symbol_resolution import FetchPlan, SymbolResolver, normalize_symbol
from app.services.valuation import ValuationEngine

__all__ = [
    # Workflows
    "PortfolioSnapshotService",
    "PortfolioSnapshot",
    "PriceRefreshService",
    "RefreshResult",
    # Pipeline
    "SymbolResolver",
    "FetchPlan",
    "normalize_symbol",
    "QuoteResolver",
    "QuoteResolution",
    "PriceTier",
    "ExchangeRateResolver",
    "ExchangeRateResult",
    "ExchangeRateHostProvider",
    "FrankfurterProvider",
    "ValuationEngine",
    # Store
    "SqlPortfolioStore",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "NavNotFoundError",
    "FXRateError",
    "FXProviderError",
    "StoreError",
    "StoreUnavailableError",
]
