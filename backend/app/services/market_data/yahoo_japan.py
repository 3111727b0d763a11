# backend/app/services/market_data/yahoo_japan.py
"""
Yahoo! Finance Japan fund page provider.

Japanese mutual funds (投資信託) have no quote API. Their NAV (基準価額) is
published on a public fund page addressed by fund code, e.g.
https://finance.yahoo.co.jp/quote/47316169. This provider only fetches the
page; NavExtractor pulls the numbers out of it.

Uses httpx for async HTTP requests. A shared AsyncClient can be injected
(tests pass one built on httpx.MockTransport); otherwise a client is opened
per request.
"""

import logging

import httpx

from app.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from app.services.market_data.base import FundDocumentProvider

logger = logging.getLogger(__name__)

DEFAULT_URL_TEMPLATE = "https://finance.yahoo.co.jp/quote/{code}"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class YahooJapanFundProvider(FundDocumentProvider):
    """
    Fetches fund pages from Yahoo! Finance Japan.

    Status mapping:
        404        -> TickerNotFoundError (not retried)
        429        -> RateLimitError (retried)
        other !2xx -> ProviderUnavailableError (retried)
        network    -> ProviderUnavailableError (retried)
    """

    def __init__(
            self,
            url_template: str = DEFAULT_URL_TEMPLATE,
            timeout: float = 10,
            user_agent: str = DEFAULT_USER_AGENT,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url_template = url_template
        self._timeout = timeout
        self._headers = {
            "User-Agent": user_agent,
            "Accept-Language": "ja,en;q=0.8",
        }
        self._client = client

    @property
    def name(self) -> str:
        return "yahoo_japan"

    async def get_fund_document(self, fund_code: str) -> str:
        return await self._execute_with_retry(self._fetch_page, fund_code)

    async def _fetch_page(self, fund_code: str) -> str:
        url = self._url_template.format(code=fund_code)
        logger.debug(f"Fetching fund page {url}")

        try:
            if self._client is not None:
                response = await self._client.get(url, headers=self._headers, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, headers=self._headers)
        except httpx.RequestError as e:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"network error fetching {fund_code}: {e}",
            )

        if response.status_code == 404:
            raise TickerNotFoundError(ticker=fund_code, provider=self.name)
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                provider=self.name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if not response.is_success:
            raise ProviderUnavailableError(
                provider=self.name,
                reason=f"HTTP {response.status_code} for {fund_code}",
            )

        return response.text
