"""
Request/response boundary for the three pipeline operations.

Handlers take already-decoded JSON bodies and query mappings and return
(status_code, body) pairs, so any transport (HTTP, CLI, tests) can drive
them. Request-level problems produce a structured error with an empty
result collection; bad individual series are dropped silently.
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import (DEFAULT_CSV_PATH, DEFAULT_ID_COLUMN, DetectionConfig,
                     IngestConfig, PreprocessConfig)
from .exceptions import RequestError, SchemaError
from .ingest import parse_clip_range, parse_wide_csv
from .pipeline import detect_mutations, preprocess_batch
from .series import normalize_many

logger = logging.getLogger(__name__)

Response = Tuple[int, dict]


class DetectPayload(BaseModel):
    """Detection request body, resolved from either accepted shape."""

    model_config = ConfigDict(populate_by_name=True)

    processed_series: List[Any] = Field(alias='processedSeries')
    raw_series: List[Any] = Field(default_factory=list, alias='rawSeries')


def parse_detect_payload(body: Any) -> DetectPayload:
    """
    Resolve the detection body once at the boundary.

    Accepted shapes:
        - [series, ...]                                  (legacy, processed only)
        - {"processedSeries": [...], "rawSeries": [...]}  (rawSeries optional)

    Raises:
        RequestError: Any other shape
    """
    if isinstance(body, list):
        return DetectPayload(processed_series=body)

    if isinstance(body, Mapping) and isinstance(body.get('processedSeries'), list):
        raw = body.get('rawSeries')
        return DetectPayload(processed_series=body['processedSeries'],
                             raw_series=raw if isinstance(raw, list) else [])

    raise RequestError('Request body must be an array of processed series '
                       'or an object with processedSeries/rawSeries',
                       detail=f"Got: {type(body).__name__}")


def _failure(key: str, err: RequestError) -> Response:
    logger.warning("Request failed (%d): %s", err.status_code, err.message)
    return err.status_code, {key: [], 'error': err.message, 'detail': err.detail}


def _query_value(query: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    """First non-None query value among aliases."""
    for name in names:
        value = query.get(name)
        if value is not None:
            return value
    return default


def _resolve_csv_path(csv_path: str, base_dir: Optional[Union[str, Path]]) -> Path:
    path = Path(csv_path)
    if path.is_absolute():
        return path
    root = Path(base_dir) if base_dir is not None else Path(os.getcwd())
    return root / path


def handle_ingest(query: Mapping[str, Any],
                  base_dir: Optional[Union[str, Path]] = None) -> Response:
    """
    Load a wide CSV from disk and parse it into series.

    Query:
        idColumn: Id column header (default 'lake_id')
        agg: avg|max|min|var|range|DJF|MAM|JJA|SON (default avg)
        clipRange: 'startYear,endYear' (optional)
        csvPath: Table path, relative to base_dir (default public/lake_temperature.csv)

    Returns:
        (status, {"series": [...], "error": str|None, "detail": ...})
    """
    try:
        id_column = str(_query_value(query, 'idColumn', default=DEFAULT_ID_COLUMN)).strip()
        if not id_column:
            raise RequestError('idColumn is required')
        csv_param = str(_query_value(query, 'csvPath', default=DEFAULT_CSV_PATH)).strip()
        if not csv_param:
            raise RequestError('csvPath is required')

        try:
            clip_range = parse_clip_range(query.get('clipRange'))
            config = IngestConfig(id_column=id_column,
                                  agg=str(_query_value(query, 'agg', default='avg')),
                                  clip_range=clip_range)
        except ValueError as e:
            raise RequestError(str(e), detail=str(e))

        csv_path = _resolve_csv_path(csv_param, base_dir)
        try:
            text = csv_path.read_text(encoding='utf-8')
        except OSError as e:
            raise RequestError('Failed to read CSV file from disk', status_code=500, detail=str(e))
        if not text:
            raise RequestError(f'Failed to read CSV at {csv_path}', status_code=500,
                               detail='File is empty')

        try:
            series = parse_wide_csv(text, config.id_column, config.agg, config.clip_range)
        except SchemaError as e:
            raise RequestError(str(e), detail=repr(e))
    except RequestError as err:
        return _failure('series', err)

    return 200, {'series': [s.to_dict() for s in series], 'error': None, 'detail': None}


def handle_preprocess(body: Any, query: Mapping[str, Any]) -> Response:
    """
    Smooth and difference a batch of raw series.

    Query:
        smoothWindow: Moving-average window (default 1)
        diffOrder: Differencing passes (default 1)

    Returns:
        (status, {"processedSeries": [...], "error": str|None, "detail": ...})
    """
    try:
        if not isinstance(body, list):
            raise RequestError('rawSeries must be an array',
                               detail=f"Got: {type(body).__name__}")
        try:
            config = PreprocessConfig(smooth_window=query.get('smoothWindow'),
                                      diff_order=query.get('diffOrder'))
        except ValueError as e:
            raise RequestError('Invalid preprocessing parameters', detail=str(e))
    except RequestError as err:
        return _failure('processedSeries', err)

    processed = preprocess_batch(body, config.smooth_window, config.diff_order)

    return 200, {
        'processedSeries': [s.to_dict() for s in processed],
        'error': None,
        'detail': None,
    }


def handle_detect(body: Any, query: Mapping[str, Any]) -> Response:
    """
    Detect one mutation point per processed series.

    Query:
        mutationMethod | method: pettitt|seq-t-avg|seq-t-ols|seq-t-sen
        minSegLen | minSegmentLength: Clamped to [1, 1000] (default 5)

    Returns:
        (status, {"mutationPoints": [...], "error": str|None,
                  "detail": {"mutationMethod", "minSegmentLength"}})
    """
    config = DetectionConfig(
        method=_query_value(query, 'mutationMethod', 'method', default='pettitt'),
        min_segment_length=_query_value(query, 'minSegLen', 'minSegmentLength'),
    )

    try:
        payload = parse_detect_payload(body)
        processed = normalize_many(payload.processed_series)
        if not processed:
            raise RequestError('No valid processed time series provided')
    except RequestError as err:
        return _failure('mutationPoints', err)

    points = detect_mutations(processed, payload.raw_series,
                              config.method, config.min_segment_length)

    return 200, {
        'mutationPoints': [p.to_dict() for p in points],
        'error': None,
        'detail': {
            'mutationMethod': config.method.value,
            'minSegmentLength': config.min_segment_length,
        },
    }
