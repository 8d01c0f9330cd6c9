"""
Fixed point helpers for the embedded fuzzy runtime.

The runtime works with 16-bit two's complement words holding 14 fractional
bits. A normalized value of 1.0 is stored as the full scale code 2^14 - 1,
so the representable normalized interval is [-2, 2].

Real values are normalized against a range first: range_min maps to 0.0 and
range_max maps to 1.0. Conversions truncate toward zero.
"""

import math
from typing import List, Tuple

from cfs.exceptions import FixedPointError

FRACTIONAL_BITS = 14
WORD_BITS = 16
SCALE = (1 << FRACTIONAL_BITS) - 1
MAX_MAGNITUDE = 2.0
TOLERANCE = 1e-9


def to_fixed(value: float) -> int:
    """
    Converts a normalized value into a fixed point code.

    Args:
        value (float): Normalized value, expected in [-2, 2].

    Returns:
        int: Signed fixed point code.

    Raises:
        FixedPointError: When the value lies outside [-2, 2].
    """
    if not math.isfinite(value) or abs(value) > MAX_MAGNITUDE + TOLERANCE:
        raise FixedPointError(
            f"{value} can't be represented in fixed point format."
        )
    value = max(-MAX_MAGNITUDE, min(MAX_MAGNITUDE, value))
    return int(value * SCALE)


def from_fixed(code: int) -> float:
    """Converts a fixed point code back into a normalized value."""
    return code / SCALE


def quantize(value: float, range_min: float, range_max: float) -> int:
    """
    Maps value from [range_min, range_max] onto [0, 1] and converts it.

    Args:
        value (float): The value to convert.
        range_min (float): Value represented by code 0.
        range_max (float): Value represented by the full scale code.

    Returns:
        int: The fixed point code, in [0, SCALE].

    Raises:
        FixedPointError: When value is outside [range_min, range_max].
    """
    normalized = (value - range_min) / (range_max - range_min)
    if normalized < -TOLERANCE or normalized > 1.0 + TOLERANCE:
        raise FixedPointError(
            f"{value} is out of range [{range_min}, {range_max}]."
        )
    return to_fixed(max(0.0, min(1.0, normalized)))


def dequantize(code: int, range_min: float, range_max: float) -> float:
    """Inverse of quantize, exact up to one quantization step."""
    return range_min + from_fixed(code) * (range_max - range_min)


def to_bytes(code: int) -> List[int]:
    """Splits a code into [high, low] bytes of a two's complement word."""
    word = code & ((1 << WORD_BITS) - 1)
    return [word >> 8, word & 0xFF]


def overflow(value: float) -> float:
    """
    Returns the signed ratio between value and the representable magnitude.

    A ratio whose magnitude is greater than 1 means value overflows.
    """
    return value / MAX_MAGNITUDE


def optimal_range(observed_min: float, observed_max: float) -> Tuple[float, float]:
    """
    Returns the range that maps [observed_min, observed_max] onto [-2, 2].

    Normalizing with the declared limits of a value uses only [0, 1], wasting
    the two integer bits of the representation. The returned range makes the
    observed limits land on the edges of the representable interval instead.

    Args:
        observed_min (float): Lowest value that must be representable.
        observed_max (float): Highest value that must be representable.

    Returns:
        Tuple[float, float]: (range_min, range_max).
    """
    if observed_max <= observed_min:
        observed_min, observed_max = observed_min - 1.0, observed_min + 1.0

    span = (observed_max - observed_min) / (2.0 * MAX_MAGNITUDE)
    range_min = (observed_min + observed_max) / 2.0
    return range_min, range_min + span
