# backend/app/services/symbol_resolution.py
"""
Symbol Resolution - maps holding symbols to the keys providers understand.

Holdings are recorded with the symbol the user (or the broker export)
chose. Quote providers need something else:

- Tokyo listings are quoted as "<4 digits>[letter].T". Holdings of the same
  listing held at different brokers carry a suffix ("1234A.T-sbi",
  "1234A.T-rakuten"); the suffix is dropped and both share one fetch.
- Mutual funds are not quoted at all. Their NAV is scraped from a fund page
  addressed by a fund code. Several holding symbols may share one code
  (distributing and reinvesting classes, NISA and taxable accounts).
- Everything else passes through unchanged ("AAPL").

The resolver produces a FetchPlan: the deduplicated keys to fetch on each
path plus the reverse mapping needed to hand results back to every
holding symbol. Pure; no I/O.

Usage:
    resolver = SymbolResolver()
    plan = resolver.build_plan(holdings)
    equity_results = await fetch(plan.equity_keys)
    quotes = plan.expand(equity_results, fund_results)
"""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from app.services.constants import FUND_CATEGORY, FUND_CODE_MAP
from app.services.records import HoldingRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Leading Tokyo Stock Exchange code, e.g. "7203.T" or "1234A.T"
_TOKYO_CODE_RE = re.compile(r"^(\d{4}[A-Za-z]?\.T)")


def normalize_symbol(symbol: str) -> str:
    """
    Convert a holding symbol into its quote fetch key.

    Examples:
        "1234A.T-sbi" -> "1234A.T"
        "7203.T"      -> "7203.T"
        "AAPL"        -> "AAPL"
    """
    match = _TOKYO_CODE_RE.match(symbol)
    if match:
        return match.group(1)
    return symbol


@dataclass
class FetchPlan:
    """
    What to fetch, and whom each result belongs to.

    Attributes:
        equity_keys: Normalized quote key -> holding symbols sharing it
        fund_codes: Fund code -> holding symbols sharing it
        unmapped: Fund holdings with no known fund code (priced at cost)

    Keys are stored in first-seen order, so iteration order is stable
    for a given holdings list.
    """

    equity_keys: dict[str, list[str]] = field(default_factory=dict)
    fund_codes: dict[str, list[str]] = field(default_factory=dict)
    unmapped: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.equity_keys and not self.fund_codes

    @property
    def holding_symbols(self) -> list[str]:
        """Every holding symbol the plan can produce a result for."""
        symbols: list[str] = []
        for group in (*self.equity_keys.values(), *self.fund_codes.values()):
            symbols.extend(group)
        return symbols

    def expand(
        self,
        equity_results: Mapping[str, T],
        fund_results: Mapping[str, T] | None = None,
    ) -> dict[str, T]:
        """
        Re-key fetch results by holding symbol.

        Every holding symbol attached to a key receives that key's result.
        Keys without a result are skipped; callers decide how to fill them.
        """
        expanded: dict[str, T] = {}

        for key, symbols in self.equity_keys.items():
            if key in equity_results:
                for symbol in symbols:
                    expanded[symbol] = equity_results[key]

        for code, symbols in self.fund_codes.items():
            if fund_results is not None and code in fund_results:
                for symbol in symbols:
                    expanded[symbol] = fund_results[code]

        return expanded


class SymbolResolver:
    """
    Builds fetch plans from holdings.

    The fund code table is injected so tests and deployments can supply
    their own; it defaults to FUND_CODE_MAP.
    """

    def __init__(self, fund_code_map: Mapping[str, str] | None = None) -> None:
        self._fund_code_map = dict(FUND_CODE_MAP if fund_code_map is None else fund_code_map)

    @staticmethod
    def normalize(symbol: str) -> str:
        return normalize_symbol(symbol)

    def fund_code_for(self, symbol: str) -> str | None:
        """Fund page code for a holding symbol, or None when unknown."""
        return self._fund_code_map.get(symbol)

    @staticmethod
    def dedupe(keys: Iterable[str]) -> list[str]:
        """Unique keys in first-seen order."""
        return list(dict.fromkeys(keys))

    def build_plan(self, holdings: Sequence[HoldingRecord]) -> FetchPlan:
        """
        Split holdings into the equity and fund fetch paths.

        Fund-category holdings go to the fund path keyed by fund code.
        Every other holding goes to the equity path keyed by its
        normalized symbol.
        """
        plan = FetchPlan()

        for holding in holdings:
            if holding.category == FUND_CATEGORY:
                code = self.fund_code_for(holding.symbol)
                if code is None:
                    logger.warning(
                        f"No fund code mapped for {holding.symbol}; it will be valued at cost"
                    )
                    plan.unmapped.append(holding.symbol)
                    continue
                _attach(plan.fund_codes, code, holding.symbol)
            else:
                _attach(plan.equity_keys, normalize_symbol(holding.symbol), holding.symbol)

        logger.debug(
            f"Fetch plan: {len(plan.equity_keys)} equity keys, "
            f"{len(plan.fund_codes)} fund codes, {len(plan.unmapped)} unmapped "
            f"(from {len(holdings)} holdings)"
        )
        return plan


def _attach(groups: dict[str, list[str]], key: str, symbol: str) -> None:
    symbols = groups.setdefault(key, [])
    if symbol not in symbols:
        symbols.append(symbol)
