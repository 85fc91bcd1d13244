"""
Rounding and remainder assignment shared by the fair-share and waterfall
engines.

All arithmetic is done on `Fraction`s so that sums are exact; results are
rounded half-up and the rounding remainder is pushed onto exactly one
element so totals are preserved.
"""

from __future__ import annotations

import math
from decimal import Decimal
from fractions import Fraction
from typing import Callable, List, Optional, Sequence, Union

Numeric = Union[int, float, Fraction, Decimal]

HALF = Fraction(1, 2)


def to_fraction(value: Optional[Numeric]) -> Fraction:
    """Exact rational value of a number; `None` counts as zero."""
    if value is None:
        return Fraction(0)
    if isinstance(value, Fraction):
        return value
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Cannot use non-finite value {value!r}")
    return Fraction(value)


def to_number(value: Fraction) -> Union[int, float]:
    """Back to a plain number: `int` when integral, `float` otherwise."""
    if value.denominator == 1:
        return int(value.numerator)
    return float(value)


def to_decimal_fraction(value: Optional[Numeric]) -> Fraction:
    """Like `to_fraction`, but floats are read as the decimal they print as.

    Planner figures are decimal quantities, so 0.1 is taken as 1/10 rather
    than its binary approximation.
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot use non-finite value {value!r}")
        return Fraction(repr(value))
    return to_fraction(value)


def _decimal_places(denominator: int) -> Optional[int]:
    twos = fives = 0
    while denominator % 2 == 0:
        denominator //= 2
        twos += 1
    while denominator % 5 == 0:
        denominator //= 5
        fives += 1
    return max(twos, fives) if denominator == 1 else None


def to_exact_number(value: Fraction) -> Union[int, Decimal, float]:
    """Back to a number without losing digits.

    Integral values become `int`, terminating fractions an exact `Decimal`;
    only non-terminating ones (thirds and the like) fall back to `float`.
    """
    if value.denominator == 1:
        return int(value.numerator)
    places = _decimal_places(value.denominator)
    if places is None:
        return float(value)
    scaled = value.numerator * (10**places // value.denominator)
    return Decimal(f"{scaled}E-{places}")


def round_half_up(value: Numeric, places: int = 0) -> Fraction:
    """Round to `places` decimals, halves towards positive infinity.

    Matches the planner grid, where -2.5 becomes -2 and 2.5 becomes 3.
    """
    scale = Fraction(10) ** places
    return Fraction(math.floor(to_fraction(value) * scale + HALF)) / scale


def largest_index(
    values: Sequence[Fraction],
    eligible: Optional[Sequence[bool]] = None,
    key: Callable[[Fraction], Fraction] = abs,
) -> Optional[int]:
    """Index of the largest eligible value; the first one wins on ties."""
    best: Optional[int] = None
    for idx, value in enumerate(values):
        if eligible is not None and not eligible[idx]:
            continue
        if best is None or key(value) > key(values[best]):
            best = idx
    return best


def distribute_remainder(
    rounded: Sequence[Fraction],
    target_total: Fraction,
    receiver: Optional[int],
) -> List[Fraction]:
    """Add `target_total - sum(rounded)` to `rounded[receiver]`.

    Returns a new list; the input is left untouched.
    """
    adjusted = list(rounded)
    remainder = target_total - sum(adjusted, Fraction(0))
    if remainder and receiver is not None:
        adjusted[receiver] += remainder
    return adjusted
