"""
Time series data model and normalization.

A TimeSeries is one spatial entity (a lake) with an ordered sequence of
(timestamp, value) points. Series arriving from callers are loosely typed
(JSON mappings); normalize_series turns them into validated, sorted values.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Point(NamedTuple):
    t: pd.Timestamp
    v: float


@dataclass(frozen=True)
class TimeSeries:
    """
    One entity's time series.

    Attributes:
        id: Stable identity (non-empty)
        label: Display name (falls back to id)
        lat, lon: Coordinates, NaN when unknown
        points: Points sorted ascending by timestamp
    """
    id: str
    label: str
    lat: float = math.nan
    lon: float = math.nan
    points: Tuple[Point, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id:
            raise ValueError("TimeSeries id must be a non-empty string")
        if not self.points:
            raise ValueError(f"TimeSeries {self.id!r} has no points")
        object.__setattr__(self, 'points', tuple(self.points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def values(self) -> np.ndarray:
        return np.array([p.v for p in self.points], dtype=float)

    @property
    def times(self) -> List[pd.Timestamp]:
        return [p.t for p in self.points]

    @property
    def years(self) -> List[int]:
        return [p.t.year for p in self.points]

    def with_points(self, points: Iterable[Point]) -> 'TimeSeries':
        """Return a new series with the same identity and the given points."""
        return TimeSeries(id=self.id, label=self.label, lat=self.lat, lon=self.lon,
                          points=tuple(points))

    def to_dict(self) -> dict:
        """JSON-compatible representation (NaN coordinates become None)."""
        return {
            'id': self.id,
            'label': self.label,
            'lat': self.lat if math.isfinite(self.lat) else None,
            'lon': self.lon if math.isfinite(self.lon) else None,
            'points': [{'t': p.t.isoformat(), 'v': p.v} for p in self.points],
        }


def to_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """
    Parse a timestamp from a string, datetime, Timestamp or epoch milliseconds.

    Returns:
        A timezone-naive Timestamp (aware inputs are converted to UTC),
        or None when the value is not a valid instant
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float, np.integer, np.floating)):
            if not math.isfinite(float(value)):
                return None
            ts = pd.Timestamp(int(value), unit='ms')
        elif isinstance(value, (str, datetime, date, pd.Timestamp, np.datetime64)):
            # Keywords such as "now" or "today" are not fixed instants
            if isinstance(value, str) and not any(ch.isdigit() for ch in value):
                return None
            ts = pd.Timestamp(value)
        else:
            return None
    except (ValueError, TypeError, OverflowError):
        return None

    if ts is pd.NaT or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def to_finite_float(value: Any) -> Optional[float]:
    """Coerce to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _coerce_point(raw: Any) -> Optional[Point]:
    if isinstance(raw, Mapping):
        t_raw, v_raw = raw.get('t'), raw.get('v')
    elif isinstance(raw, (tuple, list)) and len(raw) == 2:
        t_raw, v_raw = raw
    else:
        return None

    t = to_timestamp(t_raw)
    v = to_finite_float(v_raw)
    if t is None or v is None:
        return None
    return Point(t, v)


def normalize_series(raw: Any) -> Optional[TimeSeries]:
    """
    Validate and canonicalize a candidate series.

    Args:
        raw: Mapping with id/label/lat/lon/points keys, or a TimeSeries

    Returns:
        TimeSeries with points sorted by time, or None when the input has
        neither id nor label, or no valid points

    Notes:
        - Missing id is derived from label and vice versa
        - Unparseable coordinates become NaN (not an error)
        - Points with an invalid timestamp or non-finite value are dropped
    """
    if isinstance(raw, TimeSeries):
        raw = {'id': raw.id, 'label': raw.label, 'lat': raw.lat, 'lon': raw.lon,
               'points': list(raw.points)}
    if not isinstance(raw, Mapping):
        return None

    raw_id = raw.get('id')
    raw_label = raw.get('label')
    series_id = raw_id if isinstance(raw_id, str) and raw_id else ''
    label = raw_label if isinstance(raw_label, str) and raw_label else ''
    if not series_id and not label:
        return None

    lat = to_finite_float(raw.get('lat'))
    lon = to_finite_float(raw.get('lon'))

    points_src = raw.get('points')
    if not isinstance(points_src, (list, tuple)):
        points_src = []

    points = [p for p in (_coerce_point(item) for item in points_src) if p is not None]
    if not points:
        return None

    # sorted() is stable: equal timestamps keep input order
    points = sorted(points, key=lambda p: p.t)

    return TimeSeries(
        id=series_id or label,
        label=label or series_id,
        lat=math.nan if lat is None else lat,
        lon=math.nan if lon is None else lon,
        points=tuple(points),
    )


def normalize_many(items: Iterable[Any]) -> List[TimeSeries]:
    """Normalize a batch, silently dropping invalid entries."""
    out = []
    for position, item in enumerate(items):
        series = normalize_series(item)
        if series is None:
            logger.debug("Dropping invalid series at position %d", position)
            continue
        out.append(series)
    return out
