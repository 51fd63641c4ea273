"""Money helpers. All amounts are Decimal quantized to 2 places."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
import re

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# First signed number in a formatted string; commas are grouping
_NUMBER = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


def parse_currency(value: Any) -> Decimal:
    """
    Parse a number, numeric string or formatted string ("Rs. 1,250.50").

    Unparseable or empty input is treated as zero.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        match = _NUMBER.search(str(value))
        if match is None:
            return ZERO
        try:
            amount = Decimal(match.group(0).replace(",", ""))
        except InvalidOperation:
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def add_currency(*values: Any) -> Decimal:
    total = ZERO
    for value in values:
        total += parse_currency(value)
    return total.quantize(CENT, rounding=ROUND_HALF_UP)


def subtract_currency(a: Any, b: Any) -> Decimal:
    return (parse_currency(a) - parse_currency(b)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_float(value: Any) -> float:
    """Float form used inside JSON payment history entries."""
    return float(parse_currency(value))
