"""
Tests for the request handlers behind the HTTP endpoints.
"""

import pandas as pd
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from lakebreak.api import (
    DetectPayload,
    handle_detect,
    handle_ingest,
    handle_preprocess,
    parse_detect_payload
)
from lakebreak.exceptions import RequestError


TABLE = "\n".join([
    "lake_id,lat,lon," + ",".join(str(y) for y in range(2000, 2010)),
    "step,46.2,6.5," + ",".join(['0'] * 6 + ['10'] * 4),
    "flat,,," + ",".join(['4'] * 10),
])


def _yearly_dict(values, start=2000, series_id='lake'):
    return {
        'id': series_id,
        'label': series_id,
        'points': [{'t': f'{start + i}-01-01', 'v': v} for i, v in enumerate(values)],
    }


@pytest.fixture
def data_dir(tmp_path):
    """Directory holding public/lake_temperature.csv."""
    public = tmp_path / 'public'
    public.mkdir()
    (public / 'lake_temperature.csv').write_text(TABLE, encoding='utf-8')
    return tmp_path


# Ingest

def test_ingest_default_path(data_dir):
    """Defaults: lake_id column, avg, public/lake_temperature.csv."""
    status, body = handle_ingest({}, base_dir=data_dir)

    assert status == 200
    assert body['error'] is None
    assert [s['id'] for s in body['series']] == ['step', 'flat']

    step = body['series'][0]
    assert (step['lat'], step['lon']) == (46.2, 6.5)
    assert step['points'][0] == {'t': '2000-01-01T00:00:00', 'v': 0.0}
    assert body['series'][1]['lat'] is None


def test_ingest_clip_range(data_dir):
    """clipRange keeps the inclusive year window."""
    status, body = handle_ingest({'clipRange': '2003,2004'}, base_dir=data_dir)
    assert status == 200
    assert [p['t'][:4] for p in body['series'][0]['points']] == ['2003', '2004']


@pytest.mark.parametrize('query', [
    {'idColumn': ' '},
    {'csvPath': ''},
    {'agg': 'median'},
    {'clipRange': '2005'},
    {'clipRange': '2005,2001'},
    {'idColumn': 'station'},
])
def test_ingest_bad_request(data_dir, query):
    """Invalid parameters and schema problems are client errors."""
    status, body = handle_ingest(query, base_dir=data_dir)
    assert status == 400
    assert body['series'] == []
    assert body['error']


def test_ingest_missing_file(tmp_path):
    """Unreadable table is a server error."""
    status, body = handle_ingest({'csvPath': 'nope.csv'}, base_dir=tmp_path)
    assert status == 500
    assert body['series'] == []
    assert body['error'] == 'Failed to read CSV file from disk'


def test_ingest_empty_file(tmp_path):
    """Empty table is a server error."""
    (tmp_path / 'empty.csv').write_text('', encoding='utf-8')
    status, body = handle_ingest({'csvPath': 'empty.csv'}, base_dir=tmp_path)
    assert status == 500
    assert body['detail'] == 'File is empty'


def test_ingest_absolute_path(tmp_path):
    """Absolute csvPath ignores the base directory."""
    path = tmp_path / 'lakes.csv'
    path.write_text(TABLE, encoding='utf-8')
    status, body = handle_ingest({'csvPath': str(path)}, base_dir='/nonexistent')
    assert status == 200
    assert len(body['series']) == 2


# Preprocess

def test_preprocess_defaults():
    """Default: no smoothing, one differencing pass."""
    status, body = handle_preprocess([_yearly_dict([1, 3, 6])], {})

    assert status == 200
    series = body['processedSeries'][0]
    assert [p['v'] for p in series['points']] == [2.0, 3.0]
    assert [p['t'] for p in series['points']] == ['2001-01-01T00:00:00', '2002-01-01T00:00:00']


def test_preprocess_query_strings():
    """Query values arrive as strings and are clamped."""
    status, body = handle_preprocess([_yearly_dict([1, 2, 3, 4, 5])],
                                     {'smoothWindow': '3', 'diffOrder': '0'})
    assert status == 200
    assert [p['v'] for p in body['processedSeries'][0]['points']] == [2.0, 2.0, 3.0, 4.0, 4.5]


def test_preprocess_drops_invalid_series():
    """Bad series are skipped silently."""
    status, body = handle_preprocess([{'points': []}, 'junk', _yearly_dict([1, 2])], {})
    assert status == 200
    assert len(body['processedSeries']) == 1


def test_preprocess_body_not_array():
    """Non-array body is rejected."""
    status, body = handle_preprocess({'rawSeries': []}, {})
    assert status == 400
    assert body['processedSeries'] == []
    assert body['error'] == 'rawSeries must be an array'


@pytest.mark.parametrize('query', [
    {'smoothWindow': 'inf'},
    {'diffOrder': '1e400'},
])
def test_preprocess_infinite_parameters(query):
    """Unbounded parameters that cannot become integers are client errors."""
    status, body = handle_preprocess([_yearly_dict([1, 2, 3])], query)
    assert status == 400
    assert body['processedSeries'] == []
    assert body['error'] == 'Invalid preprocessing parameters'


# Detect

def test_parse_detect_payload_shapes():
    """Legacy array and object forms."""
    legacy = parse_detect_payload([{'id': 'a'}])
    assert isinstance(legacy, DetectPayload)
    assert legacy.processed_series == [{'id': 'a'}]
    assert legacy.raw_series == []

    full = parse_detect_payload({'processedSeries': [1], 'rawSeries': [2]})
    assert (full.processed_series, full.raw_series) == ([1], [2])

    no_raw = parse_detect_payload({'processedSeries': [1], 'rawSeries': 'oops'})
    assert no_raw.raw_series == []

    with pytest.raises(RequestError):
        parse_detect_payload({'series': []})
    with pytest.raises(RequestError):
        parse_detect_payload('text')


def test_detect_with_raw_series():
    """Object body: statistics on the raw series."""
    raw = _yearly_dict([0] * 6 + [10] * 4, series_id='step')
    _, prep = handle_preprocess([raw], {})

    status, body = handle_detect(
        {'processedSeries': prep['processedSeries'], 'rawSeries': [raw]},
        {'mutationMethod': 'pettitt', 'minSegLen': '2'},
    )

    assert status == 200
    assert body['detail'] == {'mutationMethod': 'pettitt', 'minSegmentLength': 2}
    (point,) = body['mutationPoints']
    assert point['lakeId'] == 'step'
    assert point['year'] == 2005
    assert point['index'] == 5
    assert point['preAvg'] == pytest.approx(0.0)
    assert point['postAvg'] == pytest.approx(10.0)


def test_detect_legacy_body_and_aliases():
    """Array body with the method/minSegmentLength aliases."""
    processed = _yearly_dict([0.1, -0.1, 0.2, -0.2, 0.0, 10.1, 9.9, 10.2, 9.8, 10.0])
    status, body = handle_detect([processed], {'method': 'SEQ-T-AVG', 'minSegmentLength': '2'})

    assert status == 200
    assert body['detail']['mutationMethod'] == 'seq-t-avg'
    assert body['mutationPoints'][0]['index'] == 4


def test_detect_parameter_clamping():
    """Unknown method falls back; min segment length clamps to [1, 1000]."""
    processed = _yearly_dict([0, 0, 0, 0, 5, 5, 5, 5])

    _, body = handle_detect([processed], {'mutationMethod': 'magic', 'minSegLen': '0'})
    assert body['detail'] == {'mutationMethod': 'pettitt', 'minSegmentLength': 1}

    _, body = handle_detect([processed], {'minSegLen': '99999'})
    assert body['detail']['minSegmentLength'] == 1000
    assert body['mutationPoints'] == []

    _, body = handle_detect([processed], {})
    assert body['detail']['minSegmentLength'] == 5


def test_detect_no_valid_series():
    """Nothing normalizes: client error."""
    status, body = handle_detect([{'id': 'x', 'points': []}], {})
    assert status == 400
    assert body['mutationPoints'] == []
    assert body['error'] == 'No valid processed time series provided'


def test_detect_bad_shape():
    """Unrecognized body shape: client error."""
    status, body = handle_detect({'foo': 1}, {})
    assert status == 400
    assert body['mutationPoints'] == []


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
