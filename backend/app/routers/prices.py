# backend/app/routers/prices.py
"""
Live price lookup endpoint.

- GET /prices?symbol=AAPL        - One live equity quote (404 when unknown)
- GET /prices?symbols=AAPL,7203.T - Batched live quotes, partial results allowed

Quotes come straight from the equity provider; nothing is persisted and
no fallback tier applies here.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.dependencies import get_equity_provider, get_quote_fetcher
from app.middleware.rate_limit import limiter, RATE_LIMIT_PRICES
from app.schemas.prices import BatchPriceResponse, PriceResponse
from app.services.market_data.base import EquityQuote, QuoteProvider
from app.services.market_data.fetcher import QuoteFetcher
from app.services.valuation.calculators import percent_of

# Upper bound on symbols per batched lookup
MAX_BATCH_SYMBOLS = 50

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    tags=["Prices"],
)


def _map_quote(quote: EquityQuote) -> PriceResponse:
    change = quote.price - quote.previous_close
    return PriceResponse(
        symbol=quote.symbol,
        price=quote.price,
        previous_close=quote.previous_close,
        change=change,
        change_percent=percent_of(change, quote.previous_close),
        currency=quote.currency,
        name=quote.name,
    )


def _split_symbols(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/prices",
    response_model=PriceResponse | BatchPriceResponse,
    summary="Get live prices",
)
@limiter.limit(RATE_LIMIT_PRICES)
async def get_prices(
        request: Request,  # Required for rate limiting
        symbol: str | None = Query(None, description="Single symbol, e.g. AAPL"),
        symbols: str | None = Query(None, description="Comma-separated symbols"),
        provider: QuoteProvider = Depends(get_equity_provider),
        fetcher: QuoteFetcher = Depends(get_quote_fetcher),
):
    """
    Look up live prices.

    **Single symbol:** errors map to 404 (unknown symbol) or 503
    (provider unavailable).

    **Batch:** symbols that fail are reported in `failed`; the request
    itself succeeds.
    """
    if symbol and symbol.strip():
        quote = await provider.get_equity_quote(symbol.strip())
        return _map_quote(quote)

    if symbols:
        keys = _split_symbols(symbols)
        if not keys:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No symbols given")
        if len(keys) > MAX_BATCH_SYMBOLS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"At most {MAX_BATCH_SYMBOLS} symbols per request",
            )

        result = await fetcher.fetch_equities(keys)
        logger.info(f"Price lookup: {result.success_count}/{result.total_count} symbols")
        return BatchPriceResponse(
            prices={key: _map_quote(q) for key, q in result.successful.items()},
            failed={key: str(e) for key, e in result.failed.items()},
        )

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Provide 'symbol' or 'symbols' query parameter",
    )
