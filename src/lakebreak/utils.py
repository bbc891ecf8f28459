"""
Segment statistics: mean, variance, OLS slope and Sen slope.

Used both by the sequential changepoint tests and for the pre/post
statistics reported with each mutation point.
"""

import math
import numpy as np
from typing import Dict, Optional, Sequence
from scipy.stats import theilslopes


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty segment."""
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def sample_variance(values: Sequence[float]) -> float:
    """
    Sample variance (n - 1 denominator).

    Args:
        values: Segment values

    Returns:
        Variance, or 0.0 when fewer than 2 points
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return 0.0
    return float(np.var(values, ddof=1))


def _local_index(values: np.ndarray, xs: Optional[Sequence[float]]) -> np.ndarray:
    if xs is None:
        return np.arange(len(values), dtype=float)
    xs = np.asarray(xs, dtype=float)
    if len(xs) != len(values):
        raise ValueError(f"xs has {len(xs)} entries, expected {len(values)}")
    return xs


def ols_slope(values: Sequence[float], xs: Optional[Sequence[float]] = None) -> float:
    """
    Ordinary least-squares slope of values regressed on xs.

    Args:
        values: Segment values
        xs: Regressor (default: 0-based local index)

    Returns:
        Slope, or 0.0 when the regressor has zero variance

    Notes:
        slope = Σ(x - x̄)(y - ȳ) / Σ(x - x̄)²
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return 0.0
    xs = _local_index(values, xs)

    x_centered = xs - np.mean(xs)
    y_centered = values - np.mean(values)

    denominator = np.dot(x_centered, x_centered)
    if denominator == 0:
        return 0.0

    return float(np.dot(x_centered, y_centered) / denominator)


def sen_slope(values: Sequence[float], xs: Optional[Sequence[float]] = None) -> float:
    """
    Sen's (Theil-Sen) slope: median of all pairwise slopes.

    Args:
        values: Segment values
        xs: Regressor (default: 0-based local index)

    Returns:
        Median of (v_j - v_i) / (x_j - x_i) over pairs with distinct x,
        or 0.0 when no such pair exists

    Notes:
        Robust to outliers: up to ~29% of points can be corrupted without
        moving the estimate arbitrarily. For an even number of pairwise
        slopes the median is the mean of the two central values.
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return 0.0
    xs = _local_index(values, xs)

    # theilslopes needs at least one pair with distinct x
    if np.all(xs == xs[0]):
        return 0.0

    result = theilslopes(values, xs)
    return float(result[0])


def segment_statistics(pre: Sequence[float], post: Sequence[float]) -> Dict[str, float]:
    """
    Descriptive statistics for the segments on either side of a breakpoint.

    Args:
        pre: Values up to and including the breakpoint
        post: Values after the breakpoint

    Returns:
        Dictionary with pre_avg, post_avg, pre_ols, post_ols,
        pre_sen, post_sen, pre_var, post_var

    Notes:
        Each segment is indexed independently from 0, so slopes are
        within-segment trends.
    """
    if len(pre) == 0 or len(post) == 0:
        raise ValueError("Both segments must be non-empty")

    return {
        'pre_avg': mean(pre),
        'post_avg': mean(post),
        'pre_ols': ols_slope(pre),
        'post_ols': ols_slope(post),
        'pre_sen': sen_slope(pre),
        'post_sen': sen_slope(post),
        'pre_var': sample_variance(pre),
        'post_var': sample_variance(post),
    }


def clamp_int(value, lo: float = -math.inf, hi: float = math.inf,
              default: Optional[int] = None) -> int:
    """
    Coerce a loosely-typed parameter (e.g. a query string) to a bounded int.

    Args:
        value: Raw parameter
        lo, hi: Inclusive bounds
        default: Returned when value is None

    Returns:
        floor(value) clamped to [lo, hi]; unparsable values clamp to lo
    """
    if value is None and default is not None:
        return int(default)

    try:
        num = float(value)
    except (TypeError, ValueError):
        num = math.nan

    if math.isnan(num):
        if math.isinf(lo):
            raise ValueError(f"Cannot coerce {value!r} to an integer")
        return int(lo)

    num = min(hi, max(lo, math.floor(num) if math.isfinite(num) else num))
    if math.isinf(num):
        raise ValueError(f"Cannot coerce {value!r} to a bounded integer")
    return int(num)
