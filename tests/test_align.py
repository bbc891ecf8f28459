"""
Tests for mapping processed breakpoints back to raw indices.
"""

import pandas as pd
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from lakebreak.align import map_to_raw_index, split_for_statistics
from lakebreak.series import Point, TimeSeries


def _jan1(*years):
    return [pd.Timestamp(year=y, month=1, day=1) for y in years]


def _series(times, values, series_id='lake'):
    points = tuple(Point(t, float(v)) for t, v in zip(times, values))
    return TimeSeries(id=series_id, label=series_id, points=points)


def test_exact_match():
    """Processed timestamp present in raw."""
    raw = _jan1(2000, 2001, 2002, 2003)
    processed = _jan1(2001, 2002, 2003)
    assert map_to_raw_index(processed, 1, raw) == 2


def test_offset_from_first_timestamp():
    """Target missing but the first processed timestamp is in raw."""
    raw = _jan1(2000, 2001, 2002, 2003)
    processed = _jan1(2001, 2002) + [pd.Timestamp('2003-06-01')]
    assert map_to_raw_index(processed, 2, raw) == 3


def test_nearest_timestamp():
    """Neither exact nor offset match: nearest raw point."""
    raw = _jan1(2000, 2001, 2002, 2003)
    processed = [pd.Timestamp('2001-03-01'), pd.Timestamp('2002-02-01')]
    assert map_to_raw_index(processed, 1, raw) == 2


def test_nearest_tie_keeps_first():
    """Equidistant raw points: the earlier one wins."""
    raw = [pd.Timestamp('2000-01-01'), pd.Timestamp('2000-01-03')]
    processed = [pd.Timestamp('2000-01-02')]
    assert map_to_raw_index(processed, 0, raw) == 0


def test_empty_inputs():
    """Nothing to align."""
    assert map_to_raw_index([], 0, _jan1(2000)) is None
    assert map_to_raw_index(_jan1(2000), 0, []) is None
    assert map_to_raw_index(_jan1(2000), 5, _jan1(2000)) is None


def test_split_uses_raw_values():
    """Segments come from raw observations after index mapping."""
    raw = _series(_jan1(2000, 2001, 2002, 2003, 2004), [1, 2, 3, 10, 11])
    processed = _series(_jan1(2001, 2002, 2003, 2004), [1, 1, 7, 1])

    pre, post, index = split_for_statistics(processed, 1, raw)

    assert index == 2
    assert pre == [1.0, 2.0, 3.0]
    assert post == [10.0, 11.0]


def test_split_without_raw():
    """No raw series: split the processed values."""
    processed = _series(_jan1(2001, 2002, 2003), [5, 6, 7])
    pre, post, index = split_for_statistics(processed, 0)
    assert (pre, post, index) == ([5.0], [6.0, 7.0], 0)


def test_split_falls_back_when_raw_side_empty():
    """Mapped raw index at the end would leave no post segment."""
    raw = _series(_jan1(2000, 2001), [1, 2])
    processed = _series(_jan1(2001, 2002, 2003), [4, 5, 6])

    pre, post, index = split_for_statistics(processed, 0, raw)

    assert index == 0
    assert pre == [4.0]
    assert post == [5.0, 6.0]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
