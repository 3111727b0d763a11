# backend/app/utils/fx_conversion.py
"""
FX Rate Conversion Utilities

The system carries exactly one rate: USD/JPY.

Convention: "1 USD = X JPY" (standard FX notation, base USD, quote JPY)
Example: rate=150 means 1 USD = 150 JPY
Usage: To convert USD → JPY, MULTIPLY by rate. JPY amounts pass through.

Every cross-holding total must be built from amounts that went through
to_jpy() first. Mixing USD and JPY amounts in one sum is the classic
valuation bug these helpers exist to prevent.
"""

from decimal import Decimal


def to_jpy(amount: Decimal, currency: str, usd_jpy_rate: Decimal) -> Decimal:
    """
    Convert an amount in its native currency to JPY.

    Example:
        - Amount: 9125 USD
        - Rate: 150 (1 USD = 150 JPY)
        - Result: 9125 × 150 = 1,368,750 JPY

    Args:
        amount: Amount in the native currency
        currency: "USD" or "JPY" (enum members are accepted too)
        usd_jpy_rate: Rate in FX convention (1 USD = X JPY)

    Returns:
        Amount in JPY

    Raises:
        ValueError: If the currency is not USD or JPY
    """
    code = getattr(currency, "value", currency)
    if code == "JPY":
        return amount
    if code == "USD":
        return amount * usd_jpy_rate
    raise ValueError(f"Unsupported currency: {code}")

