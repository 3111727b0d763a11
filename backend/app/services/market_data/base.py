# backend/app/services/market_data/base.py
"""
Abstract interfaces for quote sources.

Two kinds of source feed the quote pipeline:

- QuoteProvider: structured quote API for exchange-traded instruments
  (Tokyo and US equities, ETFs). Returns an EquityQuote.
- FundDocumentProvider: fetches the raw fund page for a fund code. The
  page is unstructured markup; NavExtractor turns it into a FundNav.

Using abstract base classes allows for:
- Swapping providers without touching the fetcher
- Mock implementations for testing
- Consistent retry behavior across all providers

Both are async: the fetcher runs up to a batch of calls concurrently.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

# Type variable for generic return type in retry method
T = TypeVar('T')


# =============================================================================
# DATA CLASSES - QUOTES
# =============================================================================

class QuoteSource(str, Enum):
    """Where a quote's price came from."""

    LIVE = "live"
    CACHE = "cache"
    COST_BASIS = "cost_basis"


@dataclass(frozen=True)
class EquityQuote:
    """
    Live quote returned by a QuoteProvider.

    Attributes:
        symbol: The fetch key that was requested (e.g., "7203.T", "AAPL")
        price: Last traded price
        previous_close: Prior session close (equals price when unknown)
        currency: "JPY" or "USD"
        name: Display name reported by the provider (optional)
    """

    symbol: str
    price: Decimal
    previous_close: Decimal
    currency: str
    name: str | None = None

    def __post_init__(self) -> None:
        if self.price <= 0:
            raise ValueError(f"price must be positive, got {self.price}")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass(frozen=True)
class FundNav:
    """
    NAV extracted from a fund page.

    Attributes:
        fund_code: Fund code the page was fetched for
        price: Net asset value per unit (JPY)
        previous_close: Prior NAV (price - change)
        change: Day change reported on the page (0 when absent)
        name: Fund display name from the page title (optional)
    """

    fund_code: str
    price: Decimal
    previous_close: Decimal
    change: Decimal = Decimal("0")
    name: str | None = None

    def __post_init__(self) -> None:
        if self.price <= 0:
            raise ValueError(f"NAV must be positive, got {self.price}")


@dataclass(frozen=True)
class Quote:
    """
    Price used by valuation, keyed by holding symbol.

    Attributes:
        symbol: Holding symbol (never a fetch key)
        price: Price in the holding's quote currency
        previous_close: Baseline for day change (equals price when unknown)
        currency: "JPY" or "USD"
        source: live, cache or cost_basis
        name: Display name when the source provided one
    """

    symbol: str
    price: Decimal
    previous_close: Decimal
    currency: str
    source: QuoteSource
    name: str | None = None

    @property
    def day_change(self) -> Decimal:
        return self.price - self.previous_close


@dataclass
class BatchQuoteResult:
    """
    Result of fetching many keys on one path.

    Tracks which lookups succeeded and which failed, allowing partial success.

    Attributes:
        successful: Dict mapping fetch key to the fetched value
        failed: Dict mapping fetch key to the exception that occurred
    """

    successful: dict[str, Any] = field(default_factory=dict)
    failed: dict[str, Exception] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_successful(self) -> bool:
        return self.failure_count == 0


# =============================================================================
# RETRY MIXIN
# =============================================================================

class RetryingProvider:
    """
    Exponential-backoff retry for async provider calls.

    Subclasses can override the retry configuration by setting class
    (or instance) attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError: Network issues, timeouts, server errors
        - RateLimitError: API rate limit exceeded

    Non-Retryable Exceptions:
        - TickerNotFoundError: Permanent failure (symbol doesn't exist)
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    async def _execute_with_retry(
            self,
            func: Callable[..., Awaitable[T]],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Await func with retry logic for transient failures.

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def _inner() -> T:
            return await func(*args, **kwargs)

        return await _inner()


# =============================================================================
# ABSTRACT BASE CLASSES
# =============================================================================

class QuoteProvider(RetryingProvider, ABC):
    """
    Abstract base class for structured quote sources.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this provider.

        Used for logging and error messages (e.g., "yahoo").
        """
        pass

    @abstractmethod
    async def get_equity_quote(self, symbol: str) -> EquityQuote:
        """
        Fetch the current quote for one fetch key.

        Args:
            symbol: Normalized fetch key (e.g., "7203.T", "AAPL")

        Returns:
            EquityQuote with a strictly positive price

        Raises:
            TickerNotFoundError: Symbol unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass


class FundDocumentProvider(RetryingProvider, ABC):
    """
    Abstract base class for fund page sources.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def get_fund_document(self, fund_code: str) -> str:
        """
        Fetch the raw page for a fund code.

        Returns:
            Page markup as text

        Raises:
            TickerNotFoundError: Fund code unknown (404)
            ProviderUnavailableError: Network error or non-success status
            RateLimitError: Rate limit exceeded (429)
        """
        pass
