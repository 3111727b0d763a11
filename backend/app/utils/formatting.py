# backend/app/utils/formatting.py
"""
Display formatting for amounts and percentages.

The valuation engine never rounds; these helpers are the one place where
numbers are shortened for humans (log lines, script output).
"""

from decimal import Decimal, ROUND_HALF_UP


def format_currency(amount: Decimal, currency: str = "JPY") -> str:
    """
    Format an amount with its currency symbol.

    JPY has no minor unit and is shown as whole yen; USD keeps cents.

    Examples:
        format_currency(Decimal("1368750"))          -> "¥1,368,750"
        format_currency(Decimal("-45600.4"))         -> "-¥45,600"
        format_currency(Decimal("182.5"), "USD")     -> "$182.50"
    """
    code = getattr(currency, "value", currency)
    if code == "USD":
        symbol, quantum = "$", Decimal("0.01")
    else:
        symbol, quantum = "¥", Decimal("1")

    rounded = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,}"


def format_percent(value: Decimal, places: int = 2) -> str:
    """
    Format a percentage with an explicit sign.

    Examples:
        format_percent(Decimal("19"))       -> "+19.00%"
        format_percent(Decimal("-1.234"))   -> "-1.23%"
        format_percent(Decimal("0"))        -> "0.00%"
    """
    rounded = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    sign = "+" if rounded > 0 else ""
    return f"{sign}{rounded}%"
