"""
Series preprocessing: centered moving-average smoothing, then differencing.

Differencing shortens the series; the processed points keep the trailing
timestamps of the input so the breakpoint can later be mapped back onto
the raw observations.
"""

import logging
import numpy as np
from typing import Optional, Sequence, Tuple

from .series import Point, TimeSeries

logger = logging.getLogger(__name__)


def moving_average(values: Sequence[float], window: int) -> np.ndarray:
    """
    Clamped centered moving average.

    Args:
        values: Input values (oldest first)
        window: Window length k (<= 1 means no smoothing)

    Returns:
        Smoothed values, same length as input

    Notes:
        With half = (k - 1) // 2, output i is the mean of
        values[start:start + k] where start = max(0, i - half), clipped to the
        end of the array. Windows are asymmetric near the edges.
    """
    values = np.asarray(values, dtype=float)
    k = max(1, int(window or 1))
    if k <= 1:
        return values.copy()

    n = len(values)
    half = (k - 1) // 2
    out = np.empty(n, dtype=float)

    for i in range(n):
        start = max(0, i - half)
        end = min(n, start + k)
        out[i] = np.mean(values[start:end])

    return out


def difference(values: Sequence[float], order: int) -> np.ndarray:
    """
    Apply `order` first-difference passes (v[i] - v[i-1]).

    Each pass shortens the sequence by one; stops early once empty.
    """
    out = np.asarray(values, dtype=float).copy()
    for _ in range(max(0, int(order or 0))):
        out = np.diff(out)
        if len(out) == 0:
            break
    return out


def preprocess_values(values: Sequence[float],
                      smooth_window: int = 1,
                      diff_order: int = 1) -> Tuple[np.ndarray, int]:
    """
    Smooth then difference a value sequence.

    Returns:
        (processed, offset): offset = number of leading input points the
        processed sequence no longer covers
    """
    values = np.asarray(values, dtype=float)
    processed = difference(moving_average(values, smooth_window), diff_order)
    offset = max(0, len(values) - len(processed))
    return processed, offset


def preprocess_series(series: TimeSeries,
                      smooth_window: int = 1,
                      diff_order: int = 1) -> Optional[TimeSeries]:
    """
    Preprocess one normalized series.

    Args:
        series: Normalized input (points ascending by time)
        smooth_window: Moving-average window (>= 1)
        diff_order: Number of differencing passes (>= 0)

    Returns:
        New series aligned to the trailing timestamps of the input,
        or None when differencing consumed every point
    """
    times = series.times
    processed, offset = preprocess_values(series.values, smooth_window, diff_order)

    if len(processed) == 0:
        logger.debug("Series %s has no points left after %d differencing passes",
                     series.id, diff_order)
        return None

    aligned = times[offset:]
    return series.with_points(Point(t, float(v)) for t, v in zip(aligned, processed))
