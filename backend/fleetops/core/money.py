from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    """Coerce a DB or user value to a cent-rounded ``Decimal`` (``None`` is zero)."""
    if value is None:
        return ZERO.quantize(CENT)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
