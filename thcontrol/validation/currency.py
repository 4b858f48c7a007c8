"""
Bs. to USD conversion.

Amounts are entered in bolívares together with the exchange rate of the
day; the ledger stores USD = Bs. / rate rounded to cents.

IMPORTANT: Conversion never raises. Unusable input converts to 0.00 for
display, and `try_convert_to_usd` returns None so entry points can refuse
the submission.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

NumberLike = Union[str, int, float, Decimal, None]

CENTS = Decimal("0.01")
ZERO_USD = Decimal("0.00")


def parse_decimal(value: NumberLike) -> Optional[Decimal]:
    """Parse user input into a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not number.is_finite():
        return None
    return number


def try_convert_to_usd(amount_bs: NumberLike, rate: NumberLike) -> Optional[Decimal]:
    """
    Convert a Bs. amount to USD.

    Returns None when either input is missing or non-numeric, the amount
    is negative or the rate is not positive.
    """
    bs = parse_decimal(amount_bs)
    tasa = parse_decimal(rate)
    if bs is None or tasa is None or bs < 0 or tasa <= 0:
        return None
    try:
        return (bs / tasa).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # result too large for the decimal context
        return None


def convert_to_usd(amount_bs: NumberLike, rate: NumberLike) -> Decimal:
    """Convert for display: unusable input yields 0.00."""
    converted = try_convert_to_usd(amount_bs, rate)
    return ZERO_USD if converted is None else converted


def format_usd(value: NumberLike) -> str:
    """Render an amount with two decimals, e.g. '10.00'."""
    number = parse_decimal(value)
    if number is None:
        return "0.00"
    try:
        return f"{number.quantize(CENTS, rounding=ROUND_HALF_UP):.2f}"
    except InvalidOperation:
        return f"{number:.2f}"
