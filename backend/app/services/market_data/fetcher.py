# backend/app/services/market_data/fetcher.py
"""
Quote Fetcher - batched, rate-limited retrieval of live prices.

Two fetch paths share one batching loop:

- equities: one QuoteProvider call per normalized symbol
- funds:    one page fetch + NAV extraction per unique fund code

Batching:
    Keys are processed in fixed batches (default 5). Calls inside a batch
    run concurrently with asyncio.gather; batches run one after another
    with a pause between them (0.2s equities, 0.5s funds). There is no
    pause after the last batch.

Failure handling:
    Every per-key failure (timeout, HTTP error, not found, no NAV on the
    page) is recorded against that key only. Siblings in the same batch
    are never cancelled. The result is best-effort; callers must not
    assume every holding got a quote.

Usage:
    fetcher = QuoteFetcher(YahooFinanceProvider(), YahooJapanFundProvider())
    quotes = await fetcher.fetch_batch(resolver.build_plan(holdings))
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from app.services.exceptions import NavNotFoundError
from app.services.market_data.base import (
    BatchQuoteResult,
    EquityQuote,
    FundDocumentProvider,
    FundNav,
    Quote,
    QuoteProvider,
    QuoteSource,
)
from app.services.market_data.nav_extractor import NavExtractor
from app.services.symbol_resolution import FetchPlan, SymbolResolver

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class QuoteFetcher:
    """
    Fetches live quotes for a FetchPlan.

    Args:
        equity_provider: Structured quote source for listed instruments
        fund_provider: Fund page source
        extractor: NAV extractor for fund pages
        batch_size: Keys fetched concurrently per batch
        equity_batch_delay: Seconds between equity batches
        fund_batch_delay: Seconds between fund batches
        sleep: Awaitable sleep (tests inject a recorder)
    """

    def __init__(
            self,
            equity_provider: QuoteProvider,
            fund_provider: FundDocumentProvider,
            extractor: NavExtractor | None = None,
            batch_size: int = 5,
            equity_batch_delay: float = 0.2,
            fund_batch_delay: float = 0.5,
            sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._equity_provider = equity_provider
        self._fund_provider = fund_provider
        self._extractor = extractor or NavExtractor()
        self._batch_size = batch_size
        self._equity_batch_delay = equity_batch_delay
        self._fund_batch_delay = fund_batch_delay
        self._sleep = sleep

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def fetch_equities(self, keys: Sequence[str]) -> BatchQuoteResult:
        """
        Live quotes for normalized equity symbols.

        Returns:
            BatchQuoteResult with EquityQuote values keyed by fetch key
        """
        result = await self._run_batches(
            SymbolResolver.dedupe(keys),
            self._equity_provider.get_equity_quote,
            self._equity_batch_delay,
        )
        self._log_summary("equity", result)
        return result

    async def fetch_funds(self, codes: Sequence[str]) -> BatchQuoteResult:
        """
        NAVs for fund codes, one page fetch per unique code.

        Returns:
            BatchQuoteResult with FundNav values keyed by fund code
        """
        result = await self._run_batches(
            SymbolResolver.dedupe(codes),
            self._fetch_fund_nav,
            self._fund_batch_delay,
        )
        self._log_summary("fund", result)
        return result

    async def fetch_batch(self, plan: FetchPlan) -> dict[str, Quote]:
        """
        Live quotes for every holding symbol the plan can resolve.

        Equities are fetched first, then funds. Results are re-keyed from
        fetch keys to holding symbols; a fund code shared by several
        holdings populates all of them from a single page.

        Returns:
            Partial map of holding symbol -> Quote (source=live)
        """
        equities = await self.fetch_equities(list(plan.equity_keys))
        funds = await self.fetch_funds(list(plan.fund_codes))

        equity_quotes = {
            key: (quote.price, quote.previous_close, quote.currency, quote.name)
            for key, quote in equities.successful.items()
        }
        fund_quotes = {
            code: (nav.price, nav.previous_close, "JPY", nav.name)
            for code, nav in funds.successful.items()
        }

        expanded = plan.expand(equity_quotes, fund_quotes)
        return {
            symbol: Quote(
                symbol=symbol,
                price=price,
                previous_close=previous_close,
                currency=currency,
                source=QuoteSource.LIVE,
                name=name,
            )
            for symbol, (price, previous_close, currency, name) in expanded.items()
        }

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _fetch_fund_nav(self, fund_code: str) -> FundNav:
        document = await self._fund_provider.get_fund_document(fund_code)
        nav = self._extractor.extract(document, fund_code)
        if nav is None:
            raise NavNotFoundError(fund_code, provider=self._fund_provider.name)
        return nav

    async def _run_batches(
            self,
            keys: list[str],
            fetch_one: Callable[[str], Awaitable[EquityQuote | FundNav]],
            delay: float,
    ) -> BatchQuoteResult:
        result = BatchQuoteResult()

        batches = [keys[i:i + self._batch_size] for i in range(0, len(keys), self._batch_size)]
        for index, batch in enumerate(batches):
            outcomes = await asyncio.gather(
                *(fetch_one(key) for key in batch),
                return_exceptions=True,
            )
            for key, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(f"Quote fetch failed for {key}: {outcome}")
                    result.failed[key] = outcome
                elif isinstance(outcome, BaseException):
                    # Cancellation and interpreter exits are not per-key failures
                    raise outcome
                else:
                    result.successful[key] = outcome

            if index < len(batches) - 1 and delay > 0:
                await self._sleep(delay)

        return result

    @staticmethod
    def _log_summary(path: str, result: BatchQuoteResult) -> None:
        if result.total_count == 0:
            return
        logger.info(
            f"Fetched {result.success_count}/{result.total_count} {path} quotes"
            + (f" ({result.failure_count} failed)" if result.failure_count else "")
        )
