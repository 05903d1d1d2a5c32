"""
Query facade over the statistics engine.

Exposes the three operations served to callers: window average,
pairwise correlation and the full correlation matrix. Transport layers
(HTTP, CLI) talk to this class only.
"""

from datetime import datetime
from typing import Callable, Optional, Tuple

from tickerstats.analytics.matrix import MatrixBuilder
from tickerstats.analytics.stats import SUMMARY_DIGITS, correlate, mean, report_round
from tickerstats.analytics.window import MAX_LOOKBACK_MINUTES, WindowedReader
from tickerstats.config import EngineConfig
from tickerstats.entities import CorrelationMatrix, CorrelationResult, WindowAverage
from tickerstats.errors import EmptyWindowError, UnknownSymbolError
from tickerstats.store import SeriesStore


class StatsService:
    """
    Answers window statistics queries against a SeriesStore.

    Queries never block each other or the ingestion driver beyond the
    short per-symbol copy taken by the store.
    """

    def __init__(
        self,
        store: SeriesStore,
        max_lookback_minutes: float = MAX_LOOKBACK_MINUTES,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.reader = WindowedReader(store, max_lookback_minutes, clock=clock)
        self.matrix_builder = MatrixBuilder(self.reader)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        clock: Optional[Callable[[], datetime]] = None
    ) -> "StatsService":
        """Create a service with a fresh, empty store sized from config."""
        store = SeriesStore(config.symbols, capacity=config.capacity)
        return cls(store, max_lookback_minutes=config.max_lookback_minutes, clock=clock)

    @property
    def symbols(self) -> Tuple[str, ...]:
        return self.store.symbols

    def _now(self, now: Optional[datetime]) -> datetime:
        return self.reader.clock() if now is None else now

    def get_window_average(
        self,
        symbol: str,
        lookback_minutes,
        now: Optional[datetime] = None
    ) -> WindowAverage:
        """
        Mean price of symbol over the trailing window.

        An empty window is not an error: it reports an average of 0.0 and
        an empty series.

        Raises:
            UnknownSymbolError: If symbol is not registered
            InvalidWindowError: If lookback_minutes is out of range
        """
        series = self.reader.read(symbol, lookback_minutes, self._now(now))
        try:
            average = report_round(mean(series), SUMMARY_DIGITS)
        except EmptyWindowError:
            average = 0.0
        return WindowAverage(symbol=symbol, average=average, series=series)

    def get_correlation(
        self,
        symbol_a: str,
        symbol_b: str,
        lookback_minutes,
        now: Optional[datetime] = None
    ) -> CorrelationResult:
        """
        Pearson correlation between two symbols over the trailing window.

        Raises:
            UnknownSymbolError: If either symbol is not registered
            InvalidWindowError: If lookback_minutes is out of range
        """
        for symbol in (symbol_a, symbol_b):
            if symbol not in self.store:
                raise UnknownSymbolError(symbol)

        now = self._now(now)
        window_a = self.reader.read(symbol_a, lookback_minutes, now)
        window_b = self.reader.read(symbol_b, lookback_minutes, now)
        return correlate(window_a, window_b)

    def get_correlation_matrix(
        self,
        lookback_minutes,
        now: Optional[datetime] = None
    ) -> CorrelationMatrix:
        """
        Correlation matrix across every registered symbol.

        Raises:
            InvalidWindowError: If lookback_minutes is out of range
        """
        return self.matrix_builder.build(lookback_minutes, self._now(now))
