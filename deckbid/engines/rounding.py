"""
Numeric guards shared by the engines.

Currency and quantities are reported at 2 decimals with half-up rounding
(the way an estimator rounds by hand), not Python's banker's rounding.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def finite(value, fallback: float = 0.0) -> float:
    """Coerce to float; NaN, infinities and junk become the fallback."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def round2(value) -> float:
    """Half-up round to 2 decimals. Non-finite input rounds to 0.0."""
    number = finite(value)
    return float(Decimal(repr(number)).quantize(_CENT, rounding=ROUND_HALF_UP))


def positive(value, minimum: float) -> float:
    """Clamp a spacing/divisor to a safe positive minimum."""
    number = finite(value, minimum)
    return number if number >= minimum else minimum


def ceil_clean(value: float) -> int:
    """math.ceil that ignores float noise (12.000000000000002 -> 12)."""
    return math.ceil(round(value, 6))
