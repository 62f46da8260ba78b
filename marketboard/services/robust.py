"""Order statistics used by the outlier filter and the anchor estimator.

Every function accepts any iterable of numbers, never mutates it, and returns
``None`` (not an exception) when the sample is empty.
"""

from __future__ import annotations

import math
from collections.abc import Iterable


def round_half_up(x: float) -> int:
    """Nearest integer with .5 rounded up (banker's rounding would skew gil prices)."""
    return int(math.floor(x + 0.5))


def _median_sorted(values: list[float]) -> float | None:
    n = len(values)
    if n == 0:
        return None
    mid = n // 2
    if n % 2 == 0:
        return (values[mid - 1] + values[mid]) / 2
    return values[mid]


def median(xs: Iterable[float]) -> float | None:
    return _median_sorted(sorted(xs))


def quartiles(xs: Iterable[float]) -> tuple[float | None, float | None]:
    """Return (Q1, Q3) as medians of the lower and upper halves.

    For odd sample sizes the middle element belongs to neither half, so both
    quartiles are ``None`` below two values.
    """
    values = sorted(xs)
    n = len(values)
    half = n // 2
    lower = values[:half]
    upper = values[half + 1 :] if n % 2 else values[half:]
    return _median_sorted(lower), _median_sorted(upper)


def mad(xs: Iterable[float], center: float) -> float | None:
    """Median absolute deviation around ``center`` (unscaled)."""
    return median(abs(x - center) for x in xs)


def percentile(xs: Iterable[float], p: float) -> float | None:
    """Linear-interpolation percentile at fractional rank ``(n - 1) * p``."""
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"percentile p must be within [0, 1], got {p}")
    values = sorted(xs)
    if not values:
        return None
    idx = (len(values) - 1) * p
    lo = math.floor(idx)
    hi = math.ceil(idx)
    if lo == hi:
        return values[lo]
    return values[lo] + (values[hi] - values[lo]) * (idx - lo)
