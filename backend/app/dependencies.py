# backend/app/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. This is more efficient than creating new instances per request
and keeps provider configuration in one place.

Services are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from app.dependencies import get_snapshot_service

    @router.get("/portfolio")
    async def get_portfolio(
        service: PortfolioSnapshotService = Depends(get_snapshot_service),
    ):
        ...

Tests replace any of these through app.dependency_overrides.
"""

import logging
from functools import lru_cache

from app.config import settings
from app.database import SessionLocal
from app.services.ledger_service import LedgerService
from app.services.fx_rate_service import (
    ExchangeRateHostProvider,
    ExchangeRateResolver,
    FrankfurterProvider,
)
from app.services.market_data import (
    NavExtractor,
    QuoteFetcher,
    YahooFinanceProvider,
    YahooJapanFundProvider,
)
from app.services.portfolio_service import PortfolioSnapshotService, PriceRefreshService
from app.services.quote_resolution import QuoteResolver
from app.services.store import SqlPortfolioStore
from app.services.symbol_resolution import SymbolResolver
from app.services.valuation import ValuationEngine

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Using @lru_cache ensures the function returns the same instance on every call
#
# Order matters: define dependencies before dependents
# 1. get_store, get_equity_provider, get_fund_provider (no deps)
# 2. get_quote_fetcher (depends on providers)
# 3. get_quote_resolver (depends on fetcher, store)
# 4. get_rate_resolver (no deps)
# 5. get_snapshot_service, get_refresh_service (depend on all above)
# 6. get_ledger_service (depends on store)


@lru_cache(maxsize=1)
def get_store() -> SqlPortfolioStore:
    """Get the singleton store bound to the application session factory."""
    logger.debug("Initializing singleton SqlPortfolioStore")
    return SqlPortfolioStore(SessionLocal)


@lru_cache(maxsize=1)
def get_equity_provider() -> YahooFinanceProvider:
    """
    Get the singleton equity quote provider.

    Also serves the /prices endpoint directly.
    """
    logger.debug("Initializing singleton YahooFinanceProvider")
    return YahooFinanceProvider(timeout=settings.http_timeout_seconds)


@lru_cache(maxsize=1)
def get_fund_provider() -> YahooJapanFundProvider:
    logger.debug("Initializing singleton YahooJapanFundProvider")
    return YahooJapanFundProvider(
        url_template=settings.fund_quote_url_template,
        timeout=settings.http_timeout_seconds,
        user_agent=settings.http_user_agent,
    )


@lru_cache(maxsize=1)
def get_symbol_resolver() -> SymbolResolver:
    return SymbolResolver()


@lru_cache(maxsize=1)
def get_quote_fetcher() -> QuoteFetcher:
    """
    Get the singleton QuoteFetcher.

    Batch size and pauses come from settings so every caller shares the
    same pacing towards the providers.
    """
    logger.debug("Initializing singleton QuoteFetcher")
    return QuoteFetcher(
        equity_provider=get_equity_provider(),
        fund_provider=get_fund_provider(),
        extractor=NavExtractor(),
        batch_size=settings.quote_batch_size,
        equity_batch_delay=settings.equity_batch_delay_seconds,
        fund_batch_delay=settings.fund_batch_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_quote_resolver() -> QuoteResolver:
    logger.debug("Initializing singleton QuoteResolver")
    return QuoteResolver(
        fetcher=get_quote_fetcher(),
        store=get_store(),
        symbol_resolver=get_symbol_resolver(),
    )


@lru_cache(maxsize=1)
def get_rate_resolver() -> ExchangeRateResolver:
    """
    Get the singleton USD/JPY resolver.

    Primary exchangerate.host, secondary frankfurter.app, then the
    configured default rate.
    """
    logger.debug("Initializing singleton ExchangeRateResolver")
    return ExchangeRateResolver(
        providers=[
            ExchangeRateHostProvider(url=settings.fx_primary_url, timeout=settings.http_timeout_seconds),
            FrankfurterProvider(url=settings.fx_secondary_url, timeout=settings.http_timeout_seconds),
        ],
        default_rate=settings.default_usd_jpy_rate,
    )


@lru_cache(maxsize=1)
def get_valuation_engine() -> ValuationEngine:
    return ValuationEngine(base_currency=settings.base_currency)


@lru_cache(maxsize=1)
def get_snapshot_service() -> PortfolioSnapshotService:
    """Get the singleton PortfolioSnapshotService used by GET /portfolio."""
    logger.debug("Initializing singleton PortfolioSnapshotService")
    return PortfolioSnapshotService(
        store=get_store(),
        quote_resolver=get_quote_resolver(),
        rate_resolver=get_rate_resolver(),
        engine=get_valuation_engine(),
    )


@lru_cache(maxsize=1)
def get_refresh_service() -> PriceRefreshService:
    """Get the singleton PriceRefreshService used by the cron endpoint."""
    logger.debug("Initializing singleton PriceRefreshService")
    return PriceRefreshService(
        store=get_store(),
        fetcher=get_quote_fetcher(),
        rate_resolver=get_rate_resolver(),
        symbol_resolver=get_symbol_resolver(),
    )



@lru_cache(maxsize=1)
def get_ledger_service() -> LedgerService:
    """Get the singleton LedgerService used by GET /holdings and GET /transactions."""
    return LedgerService(store=get_store())

# =============================================================================
# CACHE MANAGEMENT
# =============================================================================

def clear_service_caches() -> None:
    """
    Clear all service caches.

    Useful for testing or when you need to reset state.
    """
    get_store.cache_clear()
    get_equity_provider.cache_clear()
    get_fund_provider.cache_clear()
    get_symbol_resolver.cache_clear()
    get_quote_fetcher.cache_clear()
    get_quote_resolver.cache_clear()
    get_rate_resolver.cache_clear()
    get_valuation_engine.cache_clear()
    get_snapshot_service.cache_clear()
    get_refresh_service.cache_clear()
    get_ledger_service.cache_clear()
    logger.info("Cleared all service singleton caches")
