from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float]


def round_half_up(value: Number) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent(part: Number, whole: Number) -> int:
    """Integer percentage of part over whole; 0 when whole is not positive."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)
