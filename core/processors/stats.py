"""
Shared statistics for the channel analyzers.

All helpers accept plain sequences, operate on float64 numpy arrays and
return plain Python floats. Variances are population variances.
"""

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

# Events needed before timing-pattern detectors (scripted delays) are judged
MIN_PATTERN_EVENTS = 10

# Observations needed before a variance (or a rate over intervals) is judged
MIN_VARIANCE_OBSERVATIONS = 2

MIN_RATE_SPAN_SECONDS = 0.001


def as_array(values: Sequence[float]) -> NDArray[np.float64]:
    return np.asarray(values, dtype=np.float64)


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    arr = as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def variance(values: Sequence[float]) -> float:
    """Population variance, 0.0 for an empty sequence."""
    arr = as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.var())


def intervals(timestamps: Sequence[float]) -> NDArray[np.float64]:
    """Differences between consecutive timestamps."""
    arr = as_array(timestamps)
    if arr.size < 2:
        return np.empty(0, dtype=np.float64)
    return np.diff(arr)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Standard deviation divided by mean, 0.0 when the mean is zero."""
    arr = as_array(values)
    if arr.size == 0:
        return 0.0
    m = float(arr.mean())
    if m == 0.0:
        return 0.0
    return float(arr.std() / abs(m))


def events_per_second(timestamps: Sequence[float]) -> float:
    """
    Event rate over the span of the timestamps (ms).

    The span is floored at 1ms, so a burst sharing one timestamp reads as an
    extreme rate rather than zero.
    """
    arr = as_array(timestamps)
    if arr.size < 2:
        return 0.0
    span_seconds = max(float(arr[-1] - arr[0]) / 1000.0, MIN_RATE_SPAN_SECONDS)
    return arr.size / span_seconds


def scripted_delay_ratio(
    interval_values: Sequence[float],
    delays_ms: Sequence[float],
    tolerance_ms: float,
) -> float:
    """
    Fraction of intervals within tolerance of a multiple of a scripted delay.

    An interval matches delay d when ``interval % d`` is within tolerance of
    either 0 or d (e.g. 99.4ms matches 100ms, 40.6ms matches 20ms).
    """
    arr = as_array(interval_values)
    if arr.size == 0 or len(delays_ms) == 0:
        return 0.0

    matched = np.zeros(arr.size, dtype=bool)
    for delay in delays_ms:
        remainder = np.mod(arr, delay)
        matched |= (remainder <= tolerance_ms) | (remainder >= delay - tolerance_ms)
    return float(matched.mean())


def normalized_entropy(interval_values: Sequence[float], bucket_ms: float = 10.0) -> float:
    """
    Shannon entropy of intervals bucketed into fixed-width bins.

    Normalized by log2 of the number of occupied buckets, so the result is in
    [0, 1]. A single occupied bucket yields 0.0.
    """
    arr = as_array(interval_values)
    if arr.size == 0:
        return 0.0

    buckets = np.floor(arr / bucket_ms)
    _, counts = np.unique(buckets, return_counts=True)
    if counts.size < 2:
        return 0.0

    p = counts / counts.sum()
    entropy = float(-(p * np.log2(p)).sum())
    return entropy / math.log2(counts.size)


def detrend(values: Sequence[float]) -> NDArray[np.float64]:
    """Remove the least-squares linear trend over the sample index."""
    arr = as_array(values)
    if arr.size < 2:
        return np.zeros(arr.size, dtype=np.float64)
    index = np.arange(arr.size, dtype=np.float64)
    slope, intercept = np.polyfit(index, arr, 1)
    return arr - (slope * index + intercept)


def autocorrelation(residual: NDArray[np.float64], max_lag: int) -> NDArray[np.float64]:
    """
    Normalized autocorrelation for lags 0..max_lag (inclusive).

    Returns zeros when the residual carries no energy.
    """
    n = residual.size
    max_lag = max(0, min(max_lag, n - 1))
    acf = np.zeros(max_lag + 1, dtype=np.float64)
    energy = float(np.dot(residual, residual))
    if n == 0 or energy <= 1e-12:
        return acf
    for lag in range(max_lag + 1):
        acf[lag] = float(np.dot(residual[: n - lag], residual[lag:])) / energy
    return acf


def periodic_autocorrelation(values: Sequence[float], min_lag: int = 2, max_lag: int = 20) -> float:
    """
    Strongest periodic autocorrelation of a linearly detrended path.

    Looks at lags min_lag..min(max_lag, n // 2). Only lags after the first
    negative autocorrelation count: a residual that oscillates swings
    negative before it repeats, while leftover low-frequency drift decays
    monotonically and is not periodic.
    """
    residual = detrend(values)
    upper = min(max_lag, residual.size // 2)
    if upper < min_lag:
        return 0.0

    acf = autocorrelation(residual, upper)
    crossed = False
    best = 0.0
    for lag in range(1, upper + 1):
        if acf[lag] < 0:
            crossed = True
        if crossed and lag >= min_lag:
            best = max(best, float(acf[lag]))
    return best
