# backend/app/services/market_data/yahoo.py
"""
Yahoo Finance quote provider implementation.

This module implements the QuoteProvider interface using the yfinance library.
Yahoo Finance is a free data source suitable for personal use.

Key features:
- Tokyo listings ("7203.T") and US listings ("AAPL") through one API
- Comprehensive error handling mapped to domain exceptions
- Retry mechanism inherited from base class
- Blocking yfinance calls run in a worker thread so a batch of quotes
  can be fetched concurrently

Limitations:
- Rate limits (not officially documented, but exist)
- Data may be delayed (15-20 minutes for some markets)
"""

import asyncio
import logging
import math
from decimal import Decimal
from typing import Any

import yfinance as yf

from app.services.exceptions import (
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
)
from app.services.market_data.base import EquityQuote, QuoteProvider

logger = logging.getLogger(__name__)


class YahooFinanceProvider(QuoteProvider):
    """
    Yahoo Finance implementation of QuoteProvider.

    Reads yfinance's fast_info (last price, previous close, currency) for
    the requested symbol.

    Retry Behavior (inherited from QuoteProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on TickerNotFoundError (permanent failure)
        - Uses exponential backoff: 1s → 2s → 4s
        - Maximum 3 attempts (configurable via class attributes)

    Example:
        provider = YahooFinanceProvider()
        quote = await provider.get_equity_quote("7203.T")
        print(quote.price, quote.currency)  # Decimal("2856"), "JPY"
    """

    def __init__(self, timeout: float = 10) -> None:
        """
        Args:
            timeout: Upper bound in seconds for a single quote lookup
        """
        self._timeout = timeout
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def get_equity_quote(self, symbol: str) -> EquityQuote:
        """
        Fetch the current quote from Yahoo Finance.

        Raises:
            TickerNotFoundError: If the symbol is unknown or has no price
            RateLimitError: If Yahoo throttles the request
            ProviderUnavailableError: If Yahoo Finance is unavailable
        """
        return await self._execute_with_retry(self._fetch_quote, symbol)

    async def _fetch_quote(self, symbol: str) -> EquityQuote:
        """Single attempt (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote for {symbol}")

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._read_fast_info, symbol),
                timeout=self._timeout,
            )
        except TickerNotFoundError:
            raise
        except asyncio.TimeoutError:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"timed out after {self._timeout}s fetching {symbol}",
            )
        except Exception as e:
            error_str = str(e).lower()
            if "not found" in error_str or "no data" in error_str:
                raise TickerNotFoundError(ticker=symbol, provider=self.name)
            if "rate limit" in error_str or "too many requests" in error_str:
                raise RateLimitError(provider=self.name)

            logger.error(f"Yahoo Finance error for {symbol}: {e}")
            raise ProviderUnavailableError(
                provider=self.name,
                reason=str(e),
            )

    def _read_fast_info(self, symbol: str) -> EquityQuote:
        """Blocking yfinance call; runs in a worker thread."""
        ticker = yf.Ticker(symbol)
        fast_info = ticker.fast_info

        price = self._to_decimal(fast_info.last_price)
        if price is None or price <= 0:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)

        previous_close = self._to_decimal(fast_info.previous_close)
        if previous_close is None or previous_close <= 0:
            previous_close = price

        return EquityQuote(
            symbol=symbol,
            price=price,
            previous_close=previous_close,
            currency=self._map_currency(fast_info.currency),
            name=self._read_name(ticker, symbol),
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _read_name(self, ticker: Any, symbol: str) -> str | None:
        """Display name from ticker.info; None when Yahoo has none."""
        try:
            info = ticker.info
        except Exception as e:
            logger.debug(f"No info for {symbol} from {self.name}: {e}")
            return None
        if not isinstance(info, dict):
            return None
        name = info.get("longName") or info.get("shortName")
        return name if isinstance(name, str) and name.strip() else None

    @staticmethod
    def _map_currency(currency: str | None) -> str:
        """Tokyo listings report JPY; everything else is valued as USD."""
        return "JPY" if (currency or "").upper() == "JPY" else "USD"

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value))
        except (TypeError, ValueError):
            return None
