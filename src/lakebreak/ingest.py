"""
Wide-format table ingestion.

One row per (entity, observation batch), one column per observation date.
Columns are grouped into yearly or seasonal periods and each period is
reduced to a single value per entity.
"""

import logging
import math
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from .exceptions import SchemaError
from .series import Point, TimeSeries, to_finite_float

logger = logging.getLogger(__name__)

LAT_HEADER = re.compile(r'^(?:lat|latitude)$', re.IGNORECASE)
LON_HEADER = re.compile(r'^(?:lon|longitude)$', re.IGNORECASE)
ID_COORDINATES = re.compile(r'(-?\d+(?:\.\d+)?)\s*[,_]\s*(-?\d+(?:\.\d+)?)')
_BARE_YEAR = re.compile(r'^\d{4}$')
_HAS_YEAR = re.compile(r'\d{4}')


class Aggregation(str, Enum):
    AVG = 'avg'
    MAX = 'max'
    MIN = 'min'
    VAR = 'var'
    RANGE = 'range'
    DJF = 'DJF'
    MAM = 'MAM'
    JJA = 'JJA'
    SON = 'SON'

    @classmethod
    def parse(cls, name: Union[str, 'Aggregation', None]) -> 'Aggregation':
        """Case-insensitive lookup; None or blank means avg."""
        if isinstance(name, cls):
            return name
        text = (name or '').strip()
        if not text:
            return cls.AVG
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        raise ValueError(f"Unknown aggregation mode: {name}")

    @property
    def is_seasonal(self) -> bool:
        return self in SEASON_MONTHS


# Calendar months (1-12) belonging to each meteorological season
SEASON_MONTHS = {
    Aggregation.DJF: (12, 1, 2),
    Aggregation.MAM: (3, 4, 5),
    Aggregation.JJA: (6, 7, 8),
    Aggregation.SON: (9, 10, 11),
}

_REDUCERS = {
    Aggregation.AVG: 'mean',
    Aggregation.MAX: 'max',
    Aggregation.MIN: 'min',
    # Population variance, unlike the sample variance of segment statistics
    Aggregation.VAR: lambda s: s.var(ddof=0),
    Aggregation.RANGE: lambda s: s.max() - s.min(),
}


def split_csv_line(line: str) -> List[str]:
    """
    Split one CSV line on commas, honoring double-quote escaping.

    Args:
        line: Raw line without the trailing newline

    Returns:
        Fields with surrounding whitespace stripped

    Notes:
        Inside quotes, a doubled quote is a literal quote and commas are
        part of the field.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == ',' and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append(''.join(current))
    return [f.strip() for f in fields]


def parse_header_date(text: str) -> Optional[pd.Timestamp]:
    """
    Interpret a column header as a date.

    Returns:
        Timestamp, or None when the header is not a date

    Notes:
        A bare 4-digit header is January 1st of that year. Anything else
        must contain a 4-digit year and be accepted by pandas, so headers
        such as 'depth' or '12' are never time columns.
    """
    text = (text or '').strip()
    if _BARE_YEAR.match(text):
        return pd.Timestamp(year=int(text), month=1, day=1)
    if not _HAS_YEAR.search(text):
        return None

    ts = pd.to_datetime(text, errors='coerce')
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert('UTC').tz_localize(None)
    return ts


def period_of(ts: pd.Timestamp, agg: Aggregation) -> Optional[int]:
    """
    Target year for a time column, or None when it falls outside the season.

    December counts towards the following year's DJF season.
    """
    if not agg.is_seasonal:
        return ts.year
    if ts.month not in SEASON_MONTHS[agg]:
        return None
    if agg is Aggregation.DJF and ts.month == 12:
        return ts.year + 1
    return ts.year


def parse_clip_range(text: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Parse a 'startYear,endYear' clip range.

    Returns:
        (start, end) or None when text is empty

    Raises:
        ValueError: If text is not two integers separated by a comma
    """
    if text is None or not str(text).strip():
        return None
    parts = [p.strip() for p in str(text).split(',')]
    if len(parts) != 2:
        raise ValueError(f"clipRange must be 'startYear,endYear', got {text!r}")
    try:
        start, end = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"clipRange years must be integers, got {text!r}")
    if start > end:
        raise ValueError(f"clipRange start {start} is after end {end}")
    return start, end


def _coordinates(cols: List[str], series_id: str,
                 lat_idx: int, lon_idx: int) -> Optional[Tuple[float, float]]:
    if lat_idx >= 0 and lon_idx >= 0:
        lat = to_finite_float(cols[lat_idx]) if lat_idx < len(cols) else None
        lon = to_finite_float(cols[lon_idx]) if lon_idx < len(cols) else None
        if lat is not None and lon is not None:
            return lat, lon

    match = ID_COORDINATES.search(series_id)
    if match:
        return float(match.group(1)), float(match.group(2))
    return None


def _time_columns(header: List[str], id_idx: int) -> List[Tuple[int, pd.Timestamp]]:
    columns = []
    for idx, name in enumerate(header):
        if idx == id_idx:
            continue
        ts = parse_header_date(name)
        if ts is not None:
            columns.append((idx, ts))
    # Stable: columns with equal dates keep header order
    columns.sort(key=lambda c: c[1])
    return columns


def parse_wide_csv(text: str,
                   id_column: str,
                   agg: Union[str, Aggregation] = 'avg',
                   clip_range: Optional[Tuple[int, int]] = None) -> List[TimeSeries]:
    """
    Parse a wide CSV table into one TimeSeries per entity.

    Args:
        text: Table text; first non-blank line is the header
        id_column: Header name of the entity id column
        agg: 'avg', 'max', 'min', 'var', 'range' or a season
             ('DJF', 'MAM', 'JJA', 'SON'; seasons always average)
        clip_range: Optional inclusive (start_year, end_year)

    Returns:
        Series in order of first appearance, points ascending by year,
        each point stamped January 1st of its target year

    Raises:
        SchemaError: Missing id column, no date columns, or no period left
            after seasonal filtering
        ValueError: Unknown aggregation mode
    """
    agg = Aggregation.parse(agg)
    lines = [line for line in re.split(r'\r?\n', text or '') if line.strip()]
    if not lines:
        return []

    header = split_csv_line(lines[0])
    if id_column not in header:
        raise SchemaError(f"CSV does not contain id column '{id_column}'")
    id_idx = header.index(id_column)

    lat_idx = next((i for i, h in enumerate(header) if LAT_HEADER.match(h)), -1)
    lon_idx = next((i for i, h in enumerate(header) if LON_HEADER.match(h)), -1)

    time_columns = _time_columns(header, id_idx)
    if not time_columns:
        raise SchemaError("No time columns detected in header")

    column_period = []
    for idx, ts in time_columns:
        period = period_of(ts, agg)
        if period is not None:
            column_period.append((idx, period))
    if not column_period:
        raise SchemaError(f"No time columns fall in season {agg.value}")

    order: List[str] = []
    seen = set()
    coordinates: Dict[str, Tuple[float, float]] = {}
    records = []

    for line in lines[1:]:
        cols = split_csv_line(line)
        series_id = cols[id_idx] if id_idx < len(cols) else ''
        if not series_id:
            continue
        if series_id not in seen:
            seen.add(series_id)
            order.append(series_id)
        if series_id not in coordinates:
            found = _coordinates(cols, series_id, lat_idx, lon_idx)
            if found is not None:
                coordinates[series_id] = found

        for idx, period in column_period:
            raw = cols[idx] if idx < len(cols) else ''
            value = to_finite_float(raw) if raw else None
            if value is None:
                continue
            records.append((series_id, period, value))

    if not records:
        logger.info("Table has %d ids but no numeric cells", len(order))
        return []

    frame = pd.DataFrame.from_records(records, columns=['id', 'period', 'value'])
    reducer = _REDUCERS[Aggregation.AVG if agg.is_seasonal else agg]
    aggregated = frame.groupby(['id', 'period'], sort=True)['value'].agg(reducer)

    with_values = set(aggregated.index.get_level_values('id'))
    out = []
    for series_id in order:
        if series_id not in with_values:
            logger.debug("Dropping %s: no numeric values", series_id)
            continue
        per_id = aggregated.loc[series_id]
        points = []
        for period, value in per_id.items():
            if clip_range is not None and not (clip_range[0] <= period <= clip_range[1]):
                continue
            points.append(Point(pd.Timestamp(year=int(period), month=1, day=1), float(value)))
        if not points:
            logger.debug("Dropping %s: no points inside clip range", series_id)
            continue

        lat, lon = coordinates.get(series_id, (math.nan, math.nan))
        out.append(TimeSeries(id=series_id, label=series_id, lat=lat, lon=lon,
                              points=tuple(points)))

    logger.info("Parsed %d series over %d time columns (agg=%s)",
                len(out), len(column_period), agg.value)
    return out


def load_table(path: Union[str, Path],
               id_column: str,
               agg: Union[str, Aggregation] = 'avg',
               clip_range: Optional[Tuple[int, int]] = None) -> List[TimeSeries]:
    """
    Read a wide CSV file from disk and parse it.

    Raises:
        OSError: File cannot be read
        SchemaError: See parse_wide_csv
    """
    text = Path(path).read_text(encoding='utf-8')
    return parse_wide_csv(text, id_column, agg=agg, clip_range=clip_range)
