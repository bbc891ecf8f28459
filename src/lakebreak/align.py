"""
Map a breakpoint found on processed data back onto the raw series.

Smoothing keeps timestamps but differencing drops leading points, so the
processed index and the raw index of the same instant differ by an offset.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .series import TimeSeries

logger = logging.getLogger(__name__)


def map_to_raw_index(processed_times: Sequence[pd.Timestamp],
                     change_index: int,
                     raw_times: Sequence[pd.Timestamp]) -> Optional[int]:
    """
    Find the raw index corresponding to processed_times[change_index].

    Args:
        processed_times: Timestamps of the processed series (ascending)
        change_index: Breakpoint index into the processed series
        raw_times: Timestamps of the raw series (ascending)

    Returns:
        Raw index, or None when either series is empty

    Notes:
        Fallbacks, in order:
        1. Exact timestamp match
        2. Offset of the first processed timestamp within raw, added to
           change_index (may run past the raw end; callers check)
        3. Nearest timestamp, first found on ties. There is no distance
           cutoff, so unrelated calendars still "align".
    """
    if not processed_times or not raw_times:
        return None
    if not 0 <= change_index < len(processed_times):
        return None

    target = processed_times[change_index]

    for i, t in enumerate(raw_times):
        if t == target:
            return i

    first = processed_times[0]
    for i, t in enumerate(raw_times):
        if t == first:
            logger.debug("Aligned by first-timestamp offset %d", i)
            return i + change_index

    # Nanosecond epochs as Python ints; min() keeps the first of equal distances
    nearest = min(range(len(raw_times)), key=lambda i: abs(raw_times[i].value - target.value))
    logger.info("No exact timestamp match for %s, using nearest raw point %s",
                target, raw_times[nearest])
    return nearest


def split_for_statistics(processed: TimeSeries,
                         change_index: int,
                         raw: Optional[TimeSeries] = None) -> Tuple[List[float], List[float], int]:
    """
    Choose the pre/post segments for statistics.

    Returns:
        (pre, post, index): raw values split after the mapped raw index when
        a raw series is given and both raw sides are non-empty; otherwise the
        processed values split after change_index
    """
    if raw is not None:
        raw_idx = map_to_raw_index(processed.times, change_index, raw.times)
        if raw_idx is not None and raw_idx >= 0:
            raw_values = raw.values.tolist()
            pre, post = raw_values[:raw_idx + 1], raw_values[raw_idx + 1:]
            if pre and post:
                return pre, post, raw_idx
        logger.debug("Raw split unusable for %s, using processed values", processed.id)

    values = processed.values.tolist()
    return values[:change_index + 1], values[change_index + 1:], change_index
