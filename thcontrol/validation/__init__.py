"""Entry validation and currency conversion."""

from thcontrol.validation.currency import (
    CENTS,
    ZERO_USD,
    convert_to_usd,
    format_usd,
    parse_decimal,
    try_convert_to_usd,
)
from thcontrol.validation.validator import (
    EntryValidator,
    ValidationError,
    is_valid_bank_reference,
)

__all__ = [
    "CENTS",
    "ZERO_USD",
    "convert_to_usd",
    "format_usd",
    "parse_decimal",
    "try_convert_to_usd",
    "EntryValidator",
    "ValidationError",
    "is_valid_bank_reference",
]
