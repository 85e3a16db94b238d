"""
Numeric Utilities

Fixed-point rounding helpers shared by the ranking, enrichment and
presentation layers.

Python's built-in round() uses banker's rounding ("round half to even"),
so round(0.5) == 0 and f"{0.5:.0f}" == "0". The board rounds the way a
fixed-point decimal formatter does: half away from zero, applied to the
exact binary value of the float. Non-finite values pass through untouched.

Examples:
    >>> to_fixed(0.5, 0)
    '1'
    >>> round_half_up(0.125, 2)
    0.13
    >>> to_fixed(float("inf"), 2)
    'Infinity'
"""

import math
from decimal import Decimal, ROUND_HALF_UP


def _quantize(value: float, digits: int) -> Decimal:
    exponent = Decimal(1).scaleb(-digits)
    return Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def round_half_up(value: float, digits: int = 2) -> float:
    """
    Round a float to a fixed number of decimals, half away from zero.

    Args:
        value: Number to round (NaN and +/-Infinity are returned unchanged)
        digits: Number of decimal places

    Returns:
        Rounded float
    """
    if not math.isfinite(value):
        return value
    return float(_quantize(value, digits))


def to_fixed(value: float, digits: int = 2) -> str:
    """
    Format a float with a fixed number of decimals, half away from zero.

    Non-finite values render as "NaN", "Infinity" or "-Infinity".
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    text = format(_quantize(value, digits), "f")
    # Decimal keeps the sign of negative zero ("-0.00")
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    return text


def percent_change(current: float, previous: float) -> float:
    """
    Relative change from previous to current in percent (unrounded).

    A zero previous value yields +/-Infinity depending on the sign of the
    difference, or NaN when both are zero.
    """
    diff = current - previous
    if previous == 0:
        if diff > 0:
            return math.inf
        if diff < 0:
            return -math.inf
        return math.nan
    return diff / previous * 100
