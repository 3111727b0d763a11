# backend/app/services/market_data/nav_extractor.py
"""
NAV extraction from fund page markup.

Fund pages are built for humans, not machines, and their markup changes
without notice. Instead of one brittle selector, the extractor runs an
ordered cascade of independent strategies, most specific first:

    1. labelled       基準価額 followed by a number, skipping a bracketed
                      annotation and at most four tags
    2. yen_suffixed   a number followed by 円
    3. embedded_state "price": <number> in inline JSON
    4. meta           <meta ... description content="...基準価額 ...">
    5. data_attribute data-price / data-value / data-nav="<number>"

Each strategy returns the first strictly positive number it can find, or
None. The first strategy that returns a value wins. When every strategy
returns None the page yields no price: never zero, so a layout change can
not silently value a fund at nothing.

A secondary pass reads the fund name and the day change (前日比).

Usage:
    extractor = NavExtractor()
    nav = extractor.extract(page_html, "47316169")
    if nav is not None:
        print(nav.price, nav.previous_close)
"""

import html
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Sequence

from app.services.market_data.base import FundNav

logger = logging.getLogger(__name__)

# A number with optional thousands separators and decimals. It may not be
# followed by a digit or slash, so date fragments like 2024/01/15 never match.
_NUMBER = r"(\d[\d,]*(?:\.\d+)?)(?![\d/／])"

# Between a label and its value: whitespace, a colon, or a bracketed
# annotation such as (円) or an as-of date (01/15)
_GAP = r"(?:\s|[:：]|[（(][^)）<]{0,20}[)）])*"

# At most four tags may separate a label from its value
_TAGS = r"(?:<[^>]+>" + _GAP + r"){0,4}"


@dataclass(frozen=True)
class ExtractionStrategy:
    """
    One way of finding a price in a page.

    Attributes:
        name: Identifier used in debug logs
        pattern: Compiled regex whose first group is the number
    """

    name: str
    pattern: re.Pattern[str]

    def extract(self, document: str) -> Decimal | None:
        """First strictly positive match, or None."""
        for match in self.pattern.finditer(document):
            value = parse_number(match.group(1))
            if value is not None and value > 0:
                return value
        return None


def parse_number(text: str) -> Decimal | None:
    """Parse "12,345.67" style text; None when it is not a number."""
    cleaned = text.replace(",", "").strip()
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy(
        "labelled",
        re.compile(r"基準価額" + _GAP + _TAGS + _NUMBER),
    ),
    ExtractionStrategy(
        "yen_suffixed",
        re.compile(_NUMBER + r"\s*(?:<[^>]+>\s*)*円"),
    ),
    ExtractionStrategy(
        "embedded_state",
        re.compile(r'"price"\s*:\s*"?' + _NUMBER),
    ),
    ExtractionStrategy(
        "meta",
        re.compile(
            r'<meta[^>]*?description[^>]*?content="[^"]*?基準価額'
            r'(?:[^"\d（(]|[（(][^)）"]*[)）])*' + _NUMBER,
            re.IGNORECASE,
        ),
    ),
    ExtractionStrategy(
        "data_attribute",
        re.compile(r'data-(?:price|value|nav)="' + _NUMBER + '"', re.IGNORECASE),
    ),
)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_NAME_BREAK_RE = re.compile(r"[【\[(（]")

# Signed number after the 前日比 label; ASCII, Unicode and full-width minus
_CHANGE_RE = re.compile(r"前日比" + _GAP + _TAGS + r"([+\-−－]?)\s*" + _NUMBER)
_MINUS_SIGNS = {"-", "−", "－"}


class NavExtractor:
    """
    Runs the strategy cascade over a fund page.

    The strategy list is injectable; order is significance.
    """

    def __init__(self, strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES) -> None:
        self._strategies = tuple(strategies)

    @property
    def strategies(self) -> tuple[ExtractionStrategy, ...]:
        return self._strategies

    def extract_price(self, document: str) -> Decimal | None:
        """
        Price from the first strategy that finds a positive number.

        Returns:
            The NAV, or None when no strategy matches
        """
        for strategy in self._strategies:
            value = strategy.extract(document)
            if value is not None:
                logger.debug(f"NAV {value} found by strategy '{strategy.name}'")
                return value
        return None

    def extract(self, document: str, fund_code: str) -> FundNav | None:
        """
        Full NAV record: price, day change, previous close and name.

        Day change comes from the 前日比 field; when it is absent (or would
        make the previous close non-positive) the change is 0 and the
        previous close equals the price.
        """
        price = self.extract_price(document)
        if price is None:
            return None

        change = self.extract_change(document)
        if change is None or price - change <= 0:
            change = Decimal("0")

        return FundNav(
            fund_code=fund_code,
            price=price,
            previous_close=price - change,
            change=change,
            name=self.extract_name(document),
        )

    @staticmethod
    def extract_change(document: str) -> Decimal | None:
        match = _CHANGE_RE.search(document)
        if match is None:
            return None
        value = parse_number(match.group(2))
        if value is None:
            return None
        return -value if match.group(1) in _MINUS_SIGNS else value

    @staticmethod
    def extract_name(document: str) -> str | None:
        """Text of <title> (or <h1>) up to the first opening bracket."""
        for pattern in (_TITLE_RE, _H1_RE):
            match = pattern.search(document)
            if match is None:
                continue
            text = html.unescape(_TAG_RE.sub("", match.group(1)))
            name = _NAME_BREAK_RE.split(text, maxsplit=1)[0].strip()
            if name:
                return name
        return None
