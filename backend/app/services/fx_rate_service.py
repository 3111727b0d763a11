# backend/app/services/fx_rate_service.py
"""
Exchange-rate resolution for USD/JPY.

The portfolio reports in JPY and holds USD-quoted positions, so every
valuation needs one USD/JPY rate. Free FX APIs are unreliable, so the rate
is resolved through an ordered chain:

    1. exchangerate.host   (primary)
    2. frankfurter.app     (secondary)
    3. configured default  (150.0, provider tag "default")

Any failure of a link (network error, non-success status, malformed JSON,
missing JPY field, non-positive rate) moves to the next one. Each provider
is tried once: no retries, no backoff. A slow FX API must not hold up the
whole portfolio request, and the default always exists.

=============================================================================
FX RATE CONVENTION
=============================================================================

    rate = "1 USD = X JPY"

Conversion formula:
    To convert USD → JPY:  JPY_amount = USD_amount × rate

See app.utils.fx_conversion.to_jpy.

=============================================================================

Design Principles:
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Financial Precision: Uses Decimal for all rates
- Always resolves: resolve_rate() never raises

Usage:
    resolver = ExchangeRateResolver(
        providers=[ExchangeRateHostProvider(), FrankfurterProvider()],
        default_rate=settings.default_usd_jpy_rate,
    )
    result = await resolver.resolve_rate()
    jpy = usd_amount * result.rate
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from app.services.constants import DEFAULT_RATE_PROVIDER
from app.services.exceptions import FXProviderError, FXRateError

logger = logging.getLogger(__name__)

EXCHANGERATE_HOST_URL = "https://api.exchangerate.host/latest?base=USD&symbols=JPY"
FRANKFURTER_URL = "https://api.frankfurter.app/latest?from=USD&to=JPY"


# =============================================================================
# RESULT DATA CLASS
# =============================================================================

@dataclass(frozen=True)
class ExchangeRateResult:
    """
    A resolved USD/JPY rate.

    Attributes:
        rate: JPY per USD (> 0)
        as_of: Date the rate applies to
        provider: Source tag ("exchangerate.host", "frankfurter.app", "default")
    """

    rate: Decimal
    as_of: date
    provider: str

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")

    @property
    def is_default(self) -> bool:
        """True when no provider answered and the configured floor was used."""
        return self.provider == DEFAULT_RATE_PROVIDER


# =============================================================================
# PROVIDERS
# =============================================================================

class ExchangeRateProvider(ABC):
    """
    A single USD/JPY source.

    Implementations fetch a JSON document and pick the rate out of it.
    Every failure surfaces as FXProviderError.
    """

    def __init__(
            self,
            url: str,
            timeout: float = 10,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def _parse(self, payload: dict[str, Any]) -> tuple[Any, Any]:
        """Return (raw rate, raw date) from the provider payload."""
        pass

    async def get_usd_jpy_rate(self) -> ExchangeRateResult:
        """
        Fetch the current rate.

        Raises:
            FXProviderError: On any failure
        """
        payload = await self._get_json()
        raw_rate, raw_date = self._parse(payload)
        return ExchangeRateResult(
            rate=self._validate_rate(raw_rate),
            as_of=self._parse_date(raw_date),
            provider=self.name,
        )

    async def _get_json(self) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.get(self._url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self._url)
        except httpx.RequestError as e:
            raise FXProviderError(self.name, f"network error: {e}")

        if not response.is_success:
            raise FXProviderError(self.name, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FXProviderError(self.name, f"malformed JSON: {e}")

        if not isinstance(payload, dict):
            raise FXProviderError(self.name, "unexpected payload shape")
        return payload

    def _validate_rate(self, raw_rate: Any) -> Decimal:
        if raw_rate is None or isinstance(raw_rate, bool):
            raise FXProviderError(self.name, "missing JPY rate")
        try:
            rate = Decimal(str(raw_rate))
        except InvalidOperation:
            raise FXProviderError(self.name, f"invalid rate value: {raw_rate!r}")
        if not rate.is_finite() or rate <= 0:
            raise FXProviderError(self.name, f"non-positive rate: {rate}")
        return rate

    @staticmethod
    def _parse_date(raw_date: Any) -> date:
        if isinstance(raw_date, str):
            try:
                return date.fromisoformat(raw_date[:10])
            except ValueError:
                pass
        return date.today()


class ExchangeRateHostProvider(ExchangeRateProvider):
    """
    exchangerate.host

    Payload: {"success": true, "date": "2024-01-15", "rates": {"JPY": 147.2}}
    """

    def __init__(
            self,
            url: str = EXCHANGERATE_HOST_URL,
            timeout: float = 10,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(url, timeout, client)

    @property
    def name(self) -> str:
        return "exchangerate.host"

    def _parse(self, payload: dict[str, Any]) -> tuple[Any, Any]:
        if not payload.get("success"):
            raise FXProviderError(self.name, "response not marked successful")
        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise FXProviderError(self.name, "missing rates object")
        return rates.get("JPY"), payload.get("date")


class FrankfurterProvider(ExchangeRateProvider):
    """
    frankfurter.app (ECB reference rates)

    Payload: {"amount": 1.0, "base": "USD", "date": "2024-01-15", "rates": {"JPY": 147.2}}
    """

    def __init__(
            self,
            url: str = FRANKFURTER_URL,
            timeout: float = 10,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(url, timeout, client)

    @property
    def name(self) -> str:
        return "frankfurter.app"

    def _parse(self, payload: dict[str, Any]) -> tuple[Any, Any]:
        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise FXProviderError(self.name, "missing rates object")
        return rates.get("JPY"), payload.get("date")


# =============================================================================
# RESOLVER
# =============================================================================

class ExchangeRateResolver:
    """
    Resolves USD/JPY through an ordered provider chain with a static floor.
    """

    def __init__(
            self,
            providers: Sequence[ExchangeRateProvider],
            default_rate: Decimal = Decimal("150.0"),
    ) -> None:
        if default_rate <= 0:
            raise ValueError(f"default_rate must be positive, got {default_rate}")
        self._providers = tuple(providers)
        self._default_rate = default_rate

    @property
    def default_rate(self) -> Decimal:
        return self._default_rate

    def default_result(self, as_of: date | None = None) -> ExchangeRateResult:
        """The configured floor, tagged as the default."""
        return ExchangeRateResult(
            rate=self._default_rate,
            as_of=as_of or date.today(),
            provider=DEFAULT_RATE_PROVIDER,
        )

    async def resolve_rate(self) -> ExchangeRateResult:
        """
        First provider that answers with a positive rate, else the default.

        Never raises.
        """
        for provider in self._providers:
            try:
                result = await provider.get_usd_jpy_rate()
            except FXRateError as e:
                logger.warning(f"USD/JPY provider {provider.name} failed: {e}")
                continue

            logger.info(f"USD/JPY {result.rate} from {result.provider} (as of {result.as_of})")
            return result

        logger.warning(
            f"All USD/JPY providers failed; using default rate {self._default_rate}"
        )
        return self.default_result()
