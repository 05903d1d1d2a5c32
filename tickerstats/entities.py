"""
Core entity classes (ADTs) for the statistics engine.

These classes represent the values that flow between the store, the
windowed reader and the statistics engine. Everything handed out of the
store is immutable, so a query keeps a consistent point-in-time view even
while ingestion keeps appending.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from typing import Dict, Iterable, Iterator, List, Tuple

import pandas as pd


def format_timestamp(timestamp: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision."""
    text = timestamp.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@dataclass(frozen=True)
class Sample:
    """
    A single observed price.

    Attributes:
        value: Observed price
        timestamp: Observation instant (timezone-aware)

    Representation Invariants:
        - value is a finite float
        - timestamp is timezone-aware
    """
    value: float
    timestamp: datetime

    def __post_init__(self):
        """Validate representation invariants."""
        if isinstance(self.value, bool) or not isinstance(self.value, Real):
            raise ValueError(f"value must be a real number, got {self.value!r}")
        if not math.isfinite(self.value):
            raise ValueError(f"value must be finite, got {self.value!r}")
        if not isinstance(self.timestamp, datetime):
            raise ValueError("timestamp must be a datetime")
        if self.timestamp.tzinfo is None or self.timestamp.utcoffset() is None:
            raise ValueError("timestamp must be timezone-aware")
        object.__setattr__(self, "value", float(self.value))

    def to_dict(self) -> dict:
        """Serialise in the API wire form."""
        return {"price": self.value, "lastUpdatedAt": format_timestamp(self.timestamp)}


class PriceSeries:
    """
    An immutable, time-ordered run of samples for one symbol.

    Instances are snapshots: they never reference the store's live buffers.

    Attributes:
        symbol: Ticker symbol the samples belong to
        samples: Tuple of Sample objects in chronological order

    Representation Invariants:
        - every element of samples is a Sample
        - timestamps are non-decreasing
    """

    def __init__(self, symbol: str, samples: Iterable[Sample] = ()):
        """
        Initialize a PriceSeries.

        Preconditions:
            - samples are ordered by timestamp (ties allowed)

        Postconditions:
            - self.samples is an independent tuple copy of samples
        """
        self._symbol = symbol
        self._samples = tuple(samples)
        self._check_invariants()

    def _check_invariants(self):
        """Check representation invariants."""
        for sample in self._samples:
            if not isinstance(sample, Sample):
                raise ValueError(f"expected Sample, got {type(sample).__name__}")
        for earlier, later in zip(self._samples, self._samples[1:]):
            if later.timestamp < earlier.timestamp:
                raise ValueError("samples must be sorted by timestamp")

    @property
    def symbol(self) -> str:
        """Return the symbol (read-only)."""
        return self._symbol

    @property
    def samples(self) -> Tuple[Sample, ...]:
        """Return the samples (read-only)."""
        return self._samples

    @property
    def values(self) -> List[float]:
        """Return the sample values in chronological order."""
        return [s.value for s in self._samples]

    @property
    def timestamps(self) -> List[datetime]:
        """Return the sample timestamps in chronological order."""
        return [s.timestamp for s in self._samples]

    def to_series(self) -> pd.Series:
        """Return the values as a pandas Series indexed by timestamp."""
        index = pd.DatetimeIndex(self.timestamps) if self._samples else pd.DatetimeIndex([], tz="UTC")
        return pd.Series(self.values, index=index, name=self._symbol, dtype="float64")

    def to_list(self) -> List[dict]:
        """Serialise every sample in the API wire form."""
        return [s.to_dict() for s in self._samples]

    def __len__(self) -> int:
        """Return the number of samples."""
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index):
        return self._samples[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, PriceSeries):
            return NotImplemented
        return self._symbol == other._symbol and self._samples == other._samples

    def __repr__(self) -> str:
        """String representation."""
        return f"PriceSeries({self._symbol}, {len(self)} samples)"


@dataclass(frozen=True)
class WindowAverage:
    """
    Mean price of one symbol over a trailing window.

    Attributes:
        symbol: Ticker symbol
        average: Mean price, rounded to 6 decimals (0.0 for an empty window)
        series: Samples inside the window
    """
    symbol: str
    average: float
    series: PriceSeries

    @property
    def is_empty(self) -> bool:
        return len(self.series) == 0

    def to_dict(self) -> dict:
        return {
            "averageStockPrice": self.average,
            "priceHistory": self.series.to_list(),
        }


@dataclass(frozen=True)
class CorrelationResult:
    """
    Pearson correlation between two symbols over their common timestamps.

    Attributes:
        symbol_a: First ticker
        symbol_b: Second ticker
        correlation: Correlation in [-1, 1], rounded to 4 decimals
            (0.0 when the inputs are degenerate)
        mean_a: Mean of the aligned values of symbol_a, rounded to 6 decimals
        mean_b: Mean of the aligned values of symbol_b, rounded to 6 decimals
        series_a: Samples of symbol_a at the common timestamps
        series_b: Samples of symbol_b at the common timestamps
    """
    symbol_a: str
    symbol_b: str
    correlation: float
    mean_a: float
    mean_b: float
    series_a: Tuple[Sample, ...] = ()
    series_b: Tuple[Sample, ...] = ()

    @classmethod
    def degenerate(cls, symbol_a: str, symbol_b: str) -> "CorrelationResult":
        """Zero-valued result for overlaps too short to correlate."""
        return cls(symbol_a, symbol_b, 0.0, 0.0, 0.0)

    @property
    def n_observations(self) -> int:
        return len(self.series_a)

    def to_dict(self) -> dict:
        return {
            "correlation": self.correlation,
            "stocks": {
                self.symbol_a: {
                    "averagePrice": self.mean_a,
                    "priceHistory": [s.to_dict() for s in self.series_a],
                },
                self.symbol_b: {
                    "averagePrice": self.mean_b,
                    "priceHistory": [s.to_dict() for s in self.series_b],
                },
            },
        }

    def __repr__(self) -> str:
        return (
            f"CorrelationResult({self.symbol_a}-{self.symbol_b}, "
            f"corr={self.correlation:.4f}, n={self.n_observations})"
        )


@dataclass(frozen=True)
class SymbolSummary:
    """Mean and sample standard deviation of one symbol's window."""
    mean: float
    std: float


@dataclass
class CorrelationMatrix:
    """
    Pairwise correlations across every registered symbol.

    Attributes:
        symbols: Symbols in row/column order
        matrix: Nested mapping symbol -> symbol -> correlation
        averages: Per-symbol window mean
        standard_deviations: Per-symbol window standard deviation
        lookback_minutes: Window the matrix was computed over

    Representation Invariants:
        - matrix[s][s] == 1.0 for every s in symbols
    """
    symbols: Tuple[str, ...]
    matrix: Dict[str, Dict[str, float]]
    averages: Dict[str, float] = field(default_factory=dict)
    standard_deviations: Dict[str, float] = field(default_factory=dict)
    lookback_minutes: float = 0.0

    def __getitem__(self, symbol: str) -> Dict[str, float]:
        return self.matrix[symbol]

    def to_frame(self) -> pd.DataFrame:
        """Return the correlations as a square DataFrame."""
        symbols = list(self.symbols)
        return pd.DataFrame.from_dict(self.matrix, orient="index").loc[symbols, symbols]

    def to_dict(self) -> dict:
        return {
            "matrix": self.matrix,
            "averages": self.averages,
            "standardDeviations": self.standard_deviations,
        }
