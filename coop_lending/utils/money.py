"""Decimal helpers for monetary amounts in the single base currency"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(amount: Decimal) -> Decimal:
    """Round to one minor currency unit"""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Coerce wire or user input to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Not a decimal amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)
