"""
Fixed-point money helpers.

Amounts are Decimal throughout. Shares are rounded to cents with
ROUND_HALF_UP; sums are exact and only rounded when presented.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """Coerce int, str or Decimal to Decimal. Floats go through str() first."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


def quantize_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def per_person_share(amount: Decimal, payer_count: int) -> Decimal:
    """amount / payer_count rounded half-up to cents; 0.00 for no payers."""
    if payer_count <= 0:
        return ZERO
    return quantize_cents(to_decimal(amount) / payer_count)


def sum_shares(shares: Iterable[Decimal]) -> Decimal:
    """Exact sum; the result is rounded to cents once, at the end."""
    total = sum((to_decimal(share) for share in shares), Decimal(0))
    return quantize_cents(total)
