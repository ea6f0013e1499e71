"""Display formatting helpers"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
}


def format_currency(amount: Union[Decimal, int, float], currency: str = "USD") -> str:
    """
    Format an amount for display, e.g. Decimal("1234.5") -> "$1,234.50".

    Negative amounts render with a leading minus sign ("-$25.00").
    Unknown currency codes are appended instead of prefixed ("1,234.50 CHF").
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{sign}{digits} {currency.upper()}"
    return f"{sign}{symbol}{digits}"
