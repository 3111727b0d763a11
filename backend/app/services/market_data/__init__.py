# backend/app/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Abstract interfaces for quote sources (base.py)
- Yahoo Finance equity quotes (yahoo.py)
- Yahoo! Finance Japan fund pages (yahoo_japan.py)
- NAV extraction from fund pages (nav_extractor.py)
- Batched, rate-limited fetch orchestration (fetcher.py)

Usage:
    from app.services.market_data import (
        QuoteFetcher,
        YahooFinanceProvider,
        YahooJapanFundProvider,
        NavExtractor,
    )

Architecture:
    QuoteProvider (ABC)
    └── YahooFinanceProvider

    FundDocumentProvider (ABC)
    └── YahooJapanFundProvider

    QuoteFetcher
    └── equities via QuoteProvider
    └── funds via FundDocumentProvider + NavExtractor
"""

# Base interfaces and data classes
from app.services.market_data.base import (
    QuoteProvider,
    FundDocumentProvider,
    QuoteSource,
    EquityQuote,
    FundNav,
    Quote,
    BatchQuoteResult,
)
from app.services.market_data.nav_extractor import ExtractionStrategy, NavExtractor
from app.services.market_data.fetcher import QuoteFetcher
# Concrete implementations
from app.services.market_data.yahoo import YahooFinanceProvider
from app.services.market_data.yahoo_japan import YahooJapanFundProvider

__all__ = [
    # Abstract interfaces
    "QuoteProvider",
    "FundDocumentProvider",
    # Data classes
    "QuoteSource",
    "EquityQuote",
    "FundNav",
    "Quote",
    "BatchQuoteResult",
    # Extraction
    "ExtractionStrategy",
    "NavExtractor",
    # Orchestration
    "QuoteFetcher",
    # Concrete implementations
    "YahooFinanceProvider",
    "YahooJapanFundProvider",
]
