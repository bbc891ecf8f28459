"""
lakebreak: mutation-point detection for lake temperature series

Ingests wide-format tables, optionally smooths and differences each series,
detects a single structural breakpoint and reports pre/post segment
statistics on the raw observations.

Main Components:
- Ingest: Wide CSV → yearly or seasonal series
- Preprocess: Centered moving average + differencing
- Detect: Pettitt, sequential t (mean, OLS trend, Sen trend)
- Align: Processed breakpoint → raw index

Usage:
    from lakebreak import run_pipeline
    results = run_pipeline(csv_text, id_column='lake_id', method='pettitt')
"""

__version__ = '0.1.0'

# Main pipeline
from .pipeline import (MutationPoint, run_pipeline, preprocess_batch,
                       detect_mutation, detect_mutations, mutation_points_to_frame)

# Individual components
from .series import Point, TimeSeries, normalize_series
from .ingest import Aggregation, parse_wide_csv, load_table
from .preprocess import moving_average, difference, preprocess_series
from .detect import Method, pettitt_test, detect_change_index
from .align import map_to_raw_index
from .utils import segment_statistics, ols_slope, sen_slope
from .exceptions import LakebreakError, SchemaError, RequestError

__all__ = [
    'run_pipeline',
    'preprocess_batch',
    'detect_mutation',
    'detect_mutations',
    'mutation_points_to_frame',
    'MutationPoint',
    'Point',
    'TimeSeries',
    'normalize_series',
    'Aggregation',
    'parse_wide_csv',
    'load_table',
    'moving_average',
    'difference',
    'preprocess_series',
    'Method',
    'pettitt_test',
    'detect_change_index',
    'map_to_raw_index',
    'segment_statistics',
    'ols_slope',
    'sen_slope',
    'LakebreakError',
    'SchemaError',
    'RequestError',
]
