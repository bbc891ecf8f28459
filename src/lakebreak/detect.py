"""
Single-changepoint detection.

Four interchangeable methods locate the one split index t after which the
series regime shifts. Segments are values[:t + 1] and values[t + 1:].

- pettitt:   rank-based non-parametric test
- seq-t-avg: Welch-style two-sample mean shift
- seq-t-ols: largest divergence of within-segment OLS trends
- seq-t-sen: largest divergence of within-segment Sen trends
"""

import logging
import numpy as np
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Union

from .utils import mean, ols_slope, sample_variance, sen_slope

logger = logging.getLogger(__name__)


class Method(str, Enum):
    PETTITT = 'pettitt'
    SEQ_T_AVG = 'seq-t-avg'
    SEQ_T_OLS = 'seq-t-ols'
    SEQ_T_SEN = 'seq-t-sen'

    @classmethod
    def from_name(cls, name: Union[str, 'Method', None]) -> 'Method':
        """Case-insensitive lookup; blank or unknown names fall back to pettitt."""
        if isinstance(name, cls):
            return name
        text = str(name or '').strip().lower()
        for member in cls:
            if member.value == text:
                return member
        if text:
            logger.warning("Unknown detection method %r, using pettitt", name)
        return cls.PETTITT


def pettitt_test(values: Sequence[float], min_segment_length: int = 1) -> Dict:
    """
    Pettitt non-parametric change-point test.

    Args:
        values: 1D series
        min_segment_length: Minimum points required on each side

    Returns:
        Dictionary with:
            - change_index: Split index t, or None
            - statistic: max |K(t)|
            - p_value: Approximate significance

    Notes:
        K(t) = Σ_{i<=t} Σ_{j>t} sign(x_i - x_j). Since
        K(t) - K(t-1) = Σ_j sign(x_t - x_j), K is the cumulative sum of the
        sign-matrix row sums, which keeps it exact in integer arithmetic.
        The first maximum of |K| wins. p ≈ 2·exp(-6K² / (n³ + n²)).
    """
    x = np.asarray(values, dtype=float)
    n = len(x)
    if n < 2:
        return {'change_index': None, 'statistic': 0.0, 'p_value': 1.0}

    signs = np.sign(x[:, np.newaxis] - x[np.newaxis, :]).astype(np.int64)
    K = np.cumsum(signs.sum(axis=1))
    abs_K = np.abs(K)

    change_index = int(np.argmax(abs_K))
    statistic = int(abs_K[change_index])
    p_value = min(1.0, max(0.0, 2.0 * np.exp(-6.0 * statistic ** 2 / (n ** 3 + n ** 2))))

    if statistic == 0:
        return {'change_index': None, 'statistic': 0.0, 'p_value': 1.0}

    left_len = change_index + 1
    right_len = n - left_len
    if left_len < min_segment_length or right_len < min_segment_length:
        logger.debug("Pettitt split %d rejected (segments %d/%d < %d)",
                     change_index, left_len, right_len, min_segment_length)
        change_index = None

    return {'change_index': change_index, 'statistic': float(statistic), 'p_value': float(p_value)}


def _sequential_scan(values: Sequence[float],
                     min_segment_length: int,
                     statistic: Callable[[np.ndarray, np.ndarray], float]) -> Optional[int]:
    """
    Scan every admissible split and keep the first strictly-largest statistic.

    Candidates t range over [m - 1, n - m - 1] so that both sides hold at
    least m points.
    """
    x = np.asarray(values, dtype=float)
    n = len(x)
    m = max(1, int(min_segment_length))
    if n < 2 * m:
        return None

    best_stat = -np.inf
    best_idx = None
    for t in range(m - 1, n - m):
        stat = statistic(x[:t + 1], x[t + 1:])
        if stat > best_stat:
            best_stat = stat
            best_idx = t

    return best_idx


def _welch_statistic(left: np.ndarray, right: np.ndarray) -> float:
    se = np.sqrt(sample_variance(left) / len(left) + sample_variance(right) / len(right))
    if se <= 0:
        return 0.0
    return abs(mean(right) - mean(left)) / se


def _ols_divergence(left: np.ndarray, right: np.ndarray) -> float:
    return abs(ols_slope(right) - ols_slope(left))


def _sen_divergence(left: np.ndarray, right: np.ndarray) -> float:
    return abs(sen_slope(right) - sen_slope(left))


def sequential_t_avg(values: Sequence[float], min_segment_length: int = 5) -> Optional[int]:
    """Split maximizing |mean(right) - mean(left)| / sqrt(v1/n1 + v2/n2)."""
    return _sequential_scan(values, min_segment_length, _welch_statistic)


def sequential_t_ols(values: Sequence[float], min_segment_length: int = 5) -> Optional[int]:
    """Split maximizing the absolute difference of segment OLS slopes."""
    return _sequential_scan(values, min_segment_length, _ols_divergence)


def sequential_t_sen(values: Sequence[float], min_segment_length: int = 5) -> Optional[int]:
    """Split maximizing the absolute difference of segment Sen slopes."""
    return _sequential_scan(values, min_segment_length, _sen_divergence)


def _pettitt_index(values: Sequence[float], min_segment_length: int) -> Optional[int]:
    return pettitt_test(values, min_segment_length)['change_index']


DETECTORS: Dict[Method, Callable[[Sequence[float], int], Optional[int]]] = {
    Method.PETTITT: _pettitt_index,
    Method.SEQ_T_AVG: sequential_t_avg,
    Method.SEQ_T_OLS: sequential_t_ols,
    Method.SEQ_T_SEN: sequential_t_sen,
}


def detect_change_index(values: Sequence[float],
                        years: Sequence[int],
                        method: Union[str, Method] = Method.PETTITT,
                        min_segment_length: int = 5) -> Optional[int]:
    """
    Run the selected detector.

    Args:
        values: Series values (oldest first)
        years: Calendar year of each value
        method: Method or method name
        min_segment_length: Minimum points on each side of the split

    Returns:
        Split index into values, or None when no breakpoint is found
    """
    detector = DETECTORS[Method.from_name(method)]
    change_index = detector(values, min_segment_length)

    if change_index is None or not 0 <= change_index < len(years):
        return None
    return change_index
