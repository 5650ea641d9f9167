"""
Money Codec

Converts user-entered amounts to integer cents and back.

Text input is forgiving: both '.' and ',' are accepted as the decimal
separator, every other character is stripped, and when several separators
are present only the first one is kept. Invalid input never raises; it
returns None, which every caller must treat as a validation failure.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

AmountInput = Union[str, int, float, Decimal, None]

_NOT_AMOUNT_CHARS = re.compile(r"[^0-9.]")
_CENT = Decimal("0.01")
_ONE = Decimal("1")


def _normalize_text(text: str) -> str:
    cleaned = _NOT_AMOUNT_CHARS.sub("", text.replace(",", "."))
    head, sep, tail = cleaned.partition(".")
    # Later separators are thousands noise
    return head + sep + tail.replace(".", "")


def parse_to_minor_units(value: AmountInput) -> Optional[int]:
    """
    Parse an amount into cents.

    Examples:
        "3.50" -> 350, "3,50" -> 350, " 3.5 " -> 350, "abc" -> None,
        "1.234.56" -> 123 (only the first '.' is a decimal separator)

    Numbers keep their sign; strings lose any non-digit character, sign included.
    Rounding is half-up on the exact decimal value.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
    else:
        text = _normalize_text(str(value))
        if not text or text == ".":
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None

    if not amount.is_finite():
        return None
    return int((amount * 100).quantize(_ONE, rounding=ROUND_HALF_UP))


def format_to_major_units(minor_units: Union[int, float, None]) -> Optional[Decimal]:
    """Convert cents to a two-decimal amount. None stays None."""
    if minor_units is None:
        return None
    cents = Decimal(str(minor_units)).quantize(_ONE, rounding=ROUND_HALF_UP)
    return (cents / 100).quantize(_CENT)
