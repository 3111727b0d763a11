# backend/app/routers/portfolio.py
"""
Portfolio snapshot endpoint.

- GET /portfolio - Holdings valued with the best available prices,
  category roll-up, summary, FX rate and price tier

The endpoint degrades instead of failing: provider outages show up as
price_tier "cache" or "cost_basis" and degraded_symbols. The only error
response is a 500 when holdings cannot be read; it still carries a
structurally valid snapshot (empty holdings, default rate, no summary).
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.dependencies import get_snapshot_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_PORTFOLIO
from app.schemas.portfolio import (
    CategorySummaryResponse,
    ExchangeRateInfo,
    HoldingResponse,
    PortfolioResponse,
    PortfolioSummaryResponse,
)
from app.services.exceptions import StoreUnavailableError
from app.services.portfolio_service import PortfolioSnapshot, PortfolioSnapshotService

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    tags=["Portfolio"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_holding(holding) -> HoldingResponse:
    """Map internal HoldingValuation to Pydantic schema."""
    return HoldingResponse(
        id=holding.id,
        symbol=holding.symbol,
        name=holding.name,
        category=holding.category,
        account_type=holding.account_type,
        currency=holding.currency,
        quantity=holding.quantity,
        avg_cost=holding.avg_cost,
        current_price=holding.current_price,
        price_source=holding.price_source.value,
        total_value=holding.total_value,
        total_value_jpy=holding.total_value_jpy,
        cost_basis_jpy=holding.cost_basis_jpy,
        unrealized_pnl=holding.unrealized_pnl,
        unrealized_pnl_jpy=holding.unrealized_pnl_jpy,
        unrealized_pnl_percent=holding.unrealized_pnl_percent,
        day_change=holding.day_change,
        day_change_jpy=holding.day_change_jpy,
        day_change_percent=holding.day_change_percent,
    )


def _map_snapshot(snapshot: PortfolioSnapshot) -> PortfolioResponse:
    rate = snapshot.exchange_rate
    return PortfolioResponse(
        holdings=[_map_holding(h) for h in snapshot.holdings],
        categories=[CategorySummaryResponse.model_validate(c) for c in snapshot.categories],
        summary=(
            PortfolioSummaryResponse.model_validate(snapshot.summary)
            if snapshot.summary is not None else None
        ),
        exchange_rate=ExchangeRateInfo(usd_jpy=rate.rate, as_of=rate.as_of, source=rate.provider),
        price_tier=snapshot.price_tier.value if snapshot.price_tier is not None else None,
        degraded_symbols=snapshot.degraded_symbols,
        updated_at=snapshot.updated_at,
        error=snapshot.error,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/portfolio",
    response_model=PortfolioResponse,
    summary="Get portfolio snapshot",
    response_description="Valued holdings, categories and summary",
)
@limiter.limit(RATE_LIMIT_PORTFOLIO)
async def get_portfolio(
        request: Request,  # Required for rate limiting
        service: PortfolioSnapshotService = Depends(get_snapshot_service),
):
    """
    Value the stored portfolio with the best prices available right now.

    **Price tiers:**
    - live: quotes fetched from the providers
    - cache: latest prices saved by the refresh job
    - cost_basis: every holding at its average cost

    Holdings priced at cost basis are listed in degraded_symbols.
    """
    try:
        snapshot = await service.build_snapshot()
    except StoreUnavailableError as e:
        logger.error(f"Portfolio snapshot failed, returning safe defaults: {e}")
        fallback = _map_snapshot(service.empty_snapshot(error="Failed to load portfolio data"))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=fallback.model_dump(mode="json"),
        )

    return _map_snapshot(snapshot)
