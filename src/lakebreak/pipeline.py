"""
Main Pipeline: Ingest → Normalize → Preprocess → Detect → Align → Segment statistics.

Integrates all components for end-to-end mutation-point detection.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from .align import split_for_statistics
from .config import DetectionConfig, IngestConfig, PreprocessConfig
from .detect import Method, detect_change_index
from .ingest import Aggregation, parse_wide_csv
from .preprocess import preprocess_series
from .series import TimeSeries, normalize_many
from .utils import segment_statistics

logger = logging.getLogger(__name__)

WIRE_FIELDS = {
    'lake_id': 'lakeId',
    'year': 'year',
    'index': 'index',
    'pre_avg': 'preAvg',
    'post_avg': 'postAvg',
    'pre_ols': 'preOls',
    'post_ols': 'postOls',
    'pre_sen': 'preSen',
    'post_sen': 'postSen',
    'pre_var': 'preVar',
    'post_var': 'postVar',
}


@dataclass(frozen=True)
class MutationPoint:
    """Detected breakpoint of one series with pre/post segment statistics."""
    lake_id: str
    year: int
    index: int
    pre_avg: float
    post_avg: float
    pre_ols: float
    post_ols: float
    pre_sen: float
    post_sen: float
    pre_var: float
    post_var: float

    def to_dict(self) -> Dict[str, Any]:
        """camelCase wire representation."""
        return {WIRE_FIELDS[k]: v for k, v in asdict(self).items()}


def preprocess_batch(items: Iterable[Any],
                     smooth_window: int = 1,
                     diff_order: int = 1) -> List[TimeSeries]:
    """
    Normalize and preprocess a batch of series.

    Args:
        items: Raw series (mappings or TimeSeries)
        smooth_window: Moving-average window (>= 1, 1 = no smoothing)
        diff_order: Differencing passes (>= 0)

    Returns:
        Processed series in input order; invalid inputs and series emptied
        by differencing are skipped
    """
    config = PreprocessConfig(smooth_window=smooth_window, diff_order=diff_order)
    processed = []
    for series in normalize_many(items):
        out = preprocess_series(series, config.smooth_window, config.diff_order)
        if out is not None:
            processed.append(out)
    return processed


def detect_mutation(series: TimeSeries,
                    raw: Optional[TimeSeries] = None,
                    method: Union[str, Method] = Method.PETTITT,
                    min_segment_length: int = 5) -> Optional[MutationPoint]:
    """
    Detect the breakpoint of one processed series.

    Args:
        series: Processed (or raw) normalized series to run detection on
        raw: Matching untransformed series for the segment statistics
        method: Detection method
        min_segment_length: Minimum points on each side of the split

    Returns:
        MutationPoint, or None when no breakpoint is found

    Notes:
        The year comes from the processed series at the breakpoint; the
        index refers to the series the statistics were computed on (raw
        when the mapping succeeded).
    """
    years = series.years
    change_index = detect_change_index(series.values, years, method, min_segment_length)
    if change_index is None:
        logger.debug("No breakpoint for %s", series.id)
        return None

    pre, post, index = split_for_statistics(series, change_index, raw)
    if not pre or not post:
        logger.debug("Empty segment for %s at %d", series.id, change_index)
        return None

    return MutationPoint(
        lake_id=series.id,
        year=years[change_index],
        index=index,
        **segment_statistics(pre, post),
    )


def detect_mutations(processed: Iterable[Any],
                     raw: Optional[Iterable[Any]] = None,
                     method: Union[str, Method] = Method.PETTITT,
                     min_segment_length: int = 5) -> List[MutationPoint]:
    """
    Detect breakpoints for a batch.

    Args:
        processed: Processed series (mappings or TimeSeries)
        raw: Raw series matched to processed ones by id
        method: Detection method
        min_segment_length: Clamped to [1, 1000]

    Returns:
        One MutationPoint per series with a breakpoint, in input order
    """
    config = DetectionConfig(method=method, min_segment_length=min_segment_length)

    raw_by_id: Dict[str, TimeSeries] = {}
    for series in normalize_many(raw or []):
        raw_by_id[series.id] = series

    points = []
    for series in normalize_many(processed):
        point = detect_mutation(series, raw_by_id.get(series.id),
                                config.method, config.min_segment_length)
        if point is not None:
            points.append(point)

    logger.info("Detected %d mutation points (method=%s, min_segment_length=%d)",
                len(points), config.method.value, config.min_segment_length)
    return points


def mutation_points_to_frame(points: Iterable[MutationPoint]) -> pd.DataFrame:
    """Tabulate mutation points, one row each, camelCase columns."""
    return pd.DataFrame([p.to_dict() for p in points], columns=list(WIRE_FIELDS.values()))


def run_pipeline(table_text: str,
                 id_column: str = 'lake_id',
                 agg: Union[str, Aggregation] = 'avg',
                 clip_range: Optional[Tuple[int, int]] = None,
                 smooth_window: int = 1,
                 diff_order: int = 1,
                 method: Union[str, Method] = Method.PETTITT,
                 min_segment_length: int = 5) -> Dict:
    """
    Full ingest → preprocess → detect pipeline over one table.

    Args:
        table_text: Wide CSV text
        id_column: Entity id column header
        agg: Aggregation mode ('avg', 'max', 'min', 'var', 'range', 'DJF', ...)
        clip_range: Inclusive (start_year, end_year)
        smooth_window: Moving-average window
        diff_order: Differencing passes
        method: Detection method
        min_segment_length: Minimum segment length

    Returns:
        Dictionary with:
            - raw_series: Ingested series
            - processed_series: Preprocessed series
            - mutation_points: List of MutationPoint
            - results: DataFrame with one row per mutation point
            - summary: Counts and effective parameters

    Raises:
        SchemaError: Table header unusable
        ValueError: Invalid parameters
    """
    ingest = IngestConfig(id_column=id_column, agg=agg, clip_range=clip_range)
    prep = PreprocessConfig(smooth_window=smooth_window, diff_order=diff_order)
    detection = DetectionConfig(method=method, min_segment_length=min_segment_length)

    raw_series = parse_wide_csv(table_text, ingest.id_column, ingest.agg, ingest.clip_range)
    processed_series = preprocess_batch(raw_series, prep.smooth_window, prep.diff_order)
    mutation_points = detect_mutations(processed_series, raw_series,
                                       detection.method, detection.min_segment_length)

    summary = {
        'num_series': len(raw_series),
        'num_processed': len(processed_series),
        'num_mutations': len(mutation_points),
        'agg': ingest.agg.value,
        'smooth_window': prep.smooth_window,
        'diff_order': prep.diff_order,
        'method': detection.method.value,
        'min_segment_length': detection.min_segment_length,
    }

    return {
        'raw_series': raw_series,
        'processed_series': processed_series,
        'mutation_points': mutation_points,
        'results': mutation_points_to_frame(mutation_points),
        'summary': summary,
    }
