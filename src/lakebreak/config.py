"""
Parameter objects for ingestion, preprocessing and detection.

Values arriving from query strings or CLI flags are loosely typed; the
dataclasses resolve enumerations and clamp integers once, so the pipeline
only sees validated values.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .detect import Method
from .ingest import Aggregation
from .utils import clamp_int

DEFAULT_ID_COLUMN = 'lake_id'
DEFAULT_CSV_PATH = 'public/lake_temperature.csv'

MIN_SEGMENT_LENGTH_BOUNDS = (1, 1000)


@dataclass
class IngestConfig:
    """Table ingestion parameters"""

    id_column: str = DEFAULT_ID_COLUMN
    agg: Union[str, Aggregation] = Aggregation.AVG
    clip_range: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        self.id_column = (self.id_column or '').strip()
        if not self.id_column:
            raise ValueError("id_column is required")
        self.agg = Aggregation.parse(self.agg)
        if self.clip_range is not None:
            start, end = (int(y) for y in self.clip_range)
            if start > end:
                raise ValueError(f"clip_range start {start} is after end {end}")
            self.clip_range = (start, end)


@dataclass
class PreprocessConfig:
    """Smoothing and differencing parameters"""

    smooth_window: int = 1
    diff_order: int = 1

    def __post_init__(self):
        self.smooth_window = clamp_int(self.smooth_window, lo=1, default=1)
        self.diff_order = clamp_int(self.diff_order, lo=0, default=1)


@dataclass
class DetectionConfig:
    """Changepoint method and minimum segment length"""

    method: Union[str, Method] = Method.PETTITT
    min_segment_length: int = 5

    def __post_init__(self):
        self.method = Method.from_name(self.method)
        lo, hi = MIN_SEGMENT_LENGTH_BOUNDS
        self.min_segment_length = clamp_int(self.min_segment_length, lo=lo, hi=hi, default=5)
