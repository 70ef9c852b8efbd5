"""
Numerical primitives shared by the pattern, maintenance and optimization analyzers.
"""

import math
from typing import Sequence, Tuple

import numpy as np
from scipy.stats import linregress


def mean_and_std(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation; (0, 0) for empty input."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0, 0.0
    return float(arr.mean()), float(arr.std())


def linear_slope(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index."""
    y = np.asarray(values, dtype=float)
    if y.size < 2 or np.all(y == y[0]):
        return 0.0
    return float(linregress(np.arange(y.size), y).slope)


def coefficient_of_variation(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    mean = arr.mean()
    if mean == 0:
        return 0.0
    return float(arr.std() / abs(mean))


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation coefficient; 0 for mismatched, empty or constant input."""
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if x_arr.size != y_arr.size or x_arr.size == 0:
        return 0.0
    if np.ptp(x_arr) == 0 or np.ptp(y_arr) == 0:
        return 0.0

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return 0.0
    return float(np.clip(np.sum(dx * dy) / denominator, -1.0, 1.0))


def autocorrelation(values: Sequence[float], lag: int) -> float:
    """Sample autocorrelation at ``lag``, normalised by the full-series variance."""
    arr = np.asarray(values, dtype=float)
    n = arr.size
    if lag <= 0 or lag >= n or np.ptp(arr) == 0:
        return 0.0

    centered = arr - arr.mean()
    denominator = float(np.sum(centered * centered))
    if denominator == 0:
        return 0.0
    numerator = float(np.sum(centered[:n - lag] * centered[lag:]))
    return numerator / denominator


def student_t_cdf(t: float, df: float) -> float:
    """Closed-form approximation of the Student-t CDF used for correlation significance."""
    if df <= 0:
        return 0.5
    sign = math.copysign(1.0, t) if t != 0 else 0.0
    return 0.5 + 0.5 * sign * (1 - (df / (df + t * t)) ** (df / 2))


def correlation_significance(r: float, n: int) -> float:
    """Return ``1 - p`` for a two-sided test of correlation ``r`` over ``n`` samples."""
    if n < 3:
        return 0.0
    if abs(r) >= 1:
        return 1.0

    df = n - 2
    t = r * math.sqrt(df / (1 - r * r))
    p_value = 2 * (1 - student_t_cdf(abs(t), df))
    return float(min(1.0, max(0.0, 1 - p_value)))


def ema(previous: float, sample: float, alpha: float = 0.1) -> float:
    return alpha * sample + (1 - alpha) * previous
