"""
Window statistics: mean, standard deviation and pairwise correlation.

This module provides pure functions over PriceSeries snapshots. Degenerate
inputs (short overlaps, constant series) resolve to zero-valued results
instead of NaN or exceptions. Values are rounded only on the way out:
correlations to 4 decimals, means and standard deviations to 6.
"""

import math
from typing import Iterable, Optional, Sequence, Tuple, Union

import numpy as np

from tickerstats.entities import CorrelationResult, PriceSeries, Sample, SymbolSummary
from tickerstats.errors import EmptyWindowError

CORRELATION_DIGITS = 4
SUMMARY_DIGITS = 6

SampleInput = Union[PriceSeries, Sequence[Sample]]


def report_round(value: float, digits: int) -> float:
    """Round for reporting; never returns -0.0."""
    return round(value, digits) + 0.0


def _values(samples: Iterable) -> np.ndarray:
    values = [s.value if isinstance(s, Sample) else s for s in samples]
    return np.asarray(values, dtype=np.float64)


def mean(samples: SampleInput) -> float:
    """
    Arithmetic mean of sample values.

    Preconditions:
        - samples is a PriceSeries or a sequence of Samples (or floats)

    Args:
        samples: Samples to average

    Returns:
        Unrounded mean

    Raises:
        EmptyWindowError: If samples is empty
    """
    values = _values(samples)
    if values.size == 0:
        raise EmptyWindowError("cannot take the mean of an empty window")
    return float(values.mean())


def _sample_std(values: np.ndarray, center: float) -> float:
    # A constant series has exactly zero spread, whatever rounding the mean picked up
    if np.all(values == values[0]):
        return 0.0
    deviations = values - center
    return math.sqrt(float(np.dot(deviations, deviations)) / (values.size - 1))


def sample_std(samples: SampleInput) -> float:
    """
    Sample standard deviation with Bessel's correction (n - 1).

    Raises:
        EmptyWindowError: If fewer than 2 samples are given
    """
    values = _values(samples)
    if values.size < 2:
        raise EmptyWindowError("standard deviation needs at least 2 samples")
    return _sample_std(values, float(values.mean()))


def summarize(samples: SampleInput) -> SymbolSummary:
    """
    Rounded mean and standard deviation of a window.

    Windows with fewer than 2 samples summarize to (0.0, 0.0).
    """
    values = _values(samples)
    if values.size < 2:
        return SymbolSummary(mean=0.0, std=0.0)
    center = float(values.mean())
    return SymbolSummary(
        mean=report_round(center, SUMMARY_DIGITS),
        std=report_round(_sample_std(values, center), SUMMARY_DIGITS),
    )


def align_samples(
    series_a: SampleInput,
    series_b: SampleInput
) -> Tuple[Tuple[Sample, ...], Tuple[Sample, ...]]:
    """
    Project two series onto the timestamps they have in common.

    Timestamps must match exactly; there is no interpolation. If a series
    holds several samples at one timestamp, the last one wins.

    Postconditions:
        - both results have the same length
        - result_a[i].timestamp == result_b[i].timestamp for all i
        - timestamps follow the chronological order of series_a

    Returns:
        Tuple of (aligned samples of series_a, aligned samples of series_b)
    """
    lookup_a = {s.timestamp: s for s in series_a}
    lookup_b = {s.timestamp: s for s in series_b}
    common = [ts for ts in lookup_a if ts in lookup_b]
    return (
        tuple(lookup_a[ts] for ts in common),
        tuple(lookup_b[ts] for ts in common),
    )


def pearson(x: np.ndarray, y: np.ndarray) -> Tuple[float, float, float]:
    """
    Pearson correlation of two equal-length arrays (n >= 2).

    Returns:
        Tuple of (correlation, mean_x, mean_y), all unrounded. The
        correlation is 0.0 when either side has zero variance.
    """
    n = x.size
    mean_x = float(x.mean())
    mean_y = float(y.mean())

    std_x = _sample_std(x, mean_x)
    std_y = _sample_std(y, mean_y)
    if std_x == 0.0 or std_y == 0.0:
        return 0.0, mean_x, mean_y

    covariance = float(np.dot(x - mean_x, y - mean_y)) / (n - 1)
    correlation = covariance / (std_x * std_y)
    if not math.isfinite(correlation):
        return 0.0, mean_x, mean_y

    # Floating error can push |r| a hair past 1
    return min(1.0, max(-1.0, correlation)), mean_x, mean_y


def correlate(
    series_a: SampleInput,
    series_b: SampleInput,
    symbol_a: Optional[str] = None,
    symbol_b: Optional[str] = None
) -> CorrelationResult:
    """
    Correlate two windows over their common timestamps.

    Fewer than 2 common timestamps gives a degenerate result: correlation
    0 with zeroed means and empty aligned series.

    Args:
        series_a: First window
        series_b: Second window
        symbol_a: Label for the first window (defaults to series_a.symbol)
        symbol_b: Label for the second window (defaults to series_b.symbol)

    Returns:
        CorrelationResult with correlation rounded to 4 decimals and means
        rounded to 6 decimals
    """
    if symbol_a is None:
        symbol_a = series_a.symbol if isinstance(series_a, PriceSeries) else "A"
    if symbol_b is None:
        symbol_b = series_b.symbol if isinstance(series_b, PriceSeries) else "B"

    aligned_a, aligned_b = align_samples(series_a, series_b)
    if len(aligned_a) < 2:
        return CorrelationResult.degenerate(symbol_a, symbol_b)

    correlation, mean_a, mean_b = pearson(_values(aligned_a), _values(aligned_b))

    return CorrelationResult(
        symbol_a=symbol_a,
        symbol_b=symbol_b,
        correlation=report_round(correlation, CORRELATION_DIGITS),
        mean_a=report_round(mean_a, SUMMARY_DIGITS),
        mean_b=report_round(mean_b, SUMMARY_DIGITS),
        series_a=aligned_a,
        series_b=aligned_b,
    )
