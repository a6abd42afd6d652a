"""Decimal money arithmetic shared by every calculator.

Rounding policy: amounts are rounded half-up to whole cents. Discount and
tax are each rounded once, and the total is derived from the rounded parts,
so ``total == labor + expenses - discount + tax`` holds exactly.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from billing_engine.models.base import coerce_decimal

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


def to_decimal(value: Number) -> Decimal:
    """Convert ``value`` to Decimal, going through ``str`` for floats."""
    converted = coerce_decimal(value)
    if converted is None:
        raise ValueError("Cannot convert None to Decimal")
    return converted


def round_money(value: Number) -> Decimal:
    """Round ``value`` half-up to two decimal places.

    Example:
        >>> round_money("2.675")
        Decimal('2.68')
        >>> round_money(Decimal("-0.005"))
        Decimal('-0.01')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(amount: Number, rate: Number) -> Decimal:
    """Return ``rate`` percent of ``amount``, rounded to cents.

    Example:
        >>> percentage_of(Decimal("2375"), Decimal("10"))
        Decimal('237.50')
    """
    return round_money(to_decimal(amount) * to_decimal(rate) / HUNDRED)


def sum_money(values: Iterable[Number]) -> Decimal:
    """Sum monetary values and round the result to cents."""
    return round_money(sum((to_decimal(v) for v in values), Decimal("0")))
