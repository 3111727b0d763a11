# backend/app/routers/refresh.py
"""
Price refresh endpoint for the scheduler.

- GET|POST /cron/update-prices - Fetch live prices for all holdings and
  store one price row per holding symbol for today, plus today's USD/JPY

The rows written here are the cache tier of GET /portfolio. The
scheduler itself (and any auth in front of it) lives outside this service.
"""

import logging

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_refresh_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_REFRESH
from app.schemas.prices import RefreshResponse
from app.services.portfolio_service import PriceRefreshService

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/cron",
    tags=["Refresh"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.api_route(
    "/update-prices",
    methods=["GET", "POST"],
    response_model=RefreshResponse,
    summary="Refresh stored prices",
    response_description="Counts of updated symbols and the stored rate",
)
@limiter.limit(RATE_LIMIT_REFRESH)
async def update_prices(
        request: Request,  # Required for rate limiting
        service: PriceRefreshService = Depends(get_refresh_service),
):
    """
    Refresh the price cache.

    Holdings the providers could not price keep their previous row.
    The exchange rate is stored only when a provider answered.
    The previously stored rate is echoed back with the move against it.
    Store failures surface as 500 through the global handler.
    """
    result = await service.refresh()
    previous = result.previous_exchange_rate

    return RefreshResponse(
        success=result.success,
        updated=result.updated_count,
        total=result.total_symbols,
        updated_symbols=result.updated_symbols,
        exchange_rate=result.exchange_rate.rate,
        exchange_rate_source=result.exchange_rate.provider,
        exchange_rate_saved=result.exchange_rate_saved,
        previous_exchange_rate=previous.rate if previous is not None else None,
        previous_exchange_rate_date=previous.date if previous is not None else None,
        exchange_rate_change_percent=result.exchange_rate_change_percent,
        timestamp=result.timestamp,
    )
