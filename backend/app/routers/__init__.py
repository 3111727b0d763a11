# backend/app/routers/__init__.py
"""
API routers for the Portfolio Valuation Service.

Each router handles a specific domain:
- portfolio: Valuation snapshot with tiered price fallback
- prices: Live price lookups
- refresh: Scheduled refresh of the price cache
- ledger: Stored holdings and transactions
"""

from app.routers.ledger import router as ledger_router
from app.routers.portfolio import router as portfolio_router
from app.routers.prices import router as prices_router
from app.routers.refresh import router as refresh_router

__all__ = [
    "portfolio_router",
    "prices_router",
    "refresh_router",
    "ledger_router",
]
