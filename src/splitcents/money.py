"""Integer minor-unit (cent) helpers.

Amounts are integers everywhere inside the engine. Decimal input is converted
exactly once, at the boundary, by `to_cents`.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction

# Number of minor-unit digits per supported currency
CURRENCY_EXPONENTS: dict[str, int] = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "CAD": 2,
    "AUD": 2,
    "INR": 2,
    "JPY": 0,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}

SUPPORTED_CURRENCIES = tuple(CURRENCY_EXPONENTS)


def minor_unit_digits(currency_code: str) -> int:
    """Number of decimal places for a currency (2 when unknown)."""
    return CURRENCY_EXPONENTS.get(currency_code.upper(), 2)


def to_cents(amount: Decimal | str | int, currency_code: str = "USD") -> int:
    """
    Convert a major-unit amount to integer minor units.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount in major units (e.g. Decimal("12.34") dollars)
        currency_code: ISO currency code deciding the minor-unit exponent

    Returns:
        Amount in minor units (integer)
    """
    if isinstance(amount, float):
        raise TypeError("Floats are not accepted as money; pass a Decimal or str")
    scaled = Decimal(str(amount)).scaleb(minor_unit_digits(currency_code))
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int, currency_code: str = "USD") -> Decimal:
    """Convert integer minor units back to a major-unit Decimal."""
    return Decimal(cents).scaleb(-minor_unit_digits(currency_code))


def round_half_up(value: Fraction) -> int:
    """Round an exact rational to the nearest integer, halves away from zero."""
    if value < 0:
        return -round_half_up(-value)
    return math.floor(value + Fraction(1, 2))


def format_money(cents: int, currency_code: str = "USD") -> str:
    """
    Format minor units for display.

    Examples: 123456 USD -> "$1,234.56", 1500 JPY -> "¥1,500",
    -250 EUR -> "-€2.50", 999 CHF -> "CHF 9.99".
    """
    code = currency_code.upper()
    digits = minor_unit_digits(code)
    amount = from_cents(abs(cents), code)
    number = f"{amount:,.{digits}f}"
    sign = "-" if cents < 0 else ""

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {number}"
    return f"{sign}{symbol}{number}"
