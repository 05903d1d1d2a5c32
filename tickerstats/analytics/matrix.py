"""
Correlation matrix across every registered symbol.

Builds the full symbol x symbol correlation table together with each
symbol's own window mean and standard deviation.
"""

from datetime import datetime
from typing import Dict, Optional, Sequence

from tickerstats.analytics.stats import correlate, summarize
from tickerstats.analytics.window import WindowedReader
from tickerstats.entities import CorrelationMatrix, PriceSeries


class MatrixBuilder:
    """
    Computes correlation matrices from a WindowedReader.

    By default each symbol's window is read once per build and each
    unordered pair is correlated once and mirrored. Pearson correlation and
    timestamp alignment are symmetric, so (a, b) and (b, a) come out
    identical. With symmetric=False every ordered pair is computed from its
    own fresh reads instead.
    """

    def __init__(self, reader: WindowedReader, symmetric: bool = True):
        self.reader = reader
        self.symmetric = symmetric

    def build(
        self,
        lookback_minutes,
        now: Optional[datetime] = None,
        symbols: Optional[Sequence[str]] = None
    ) -> CorrelationMatrix:
        """
        Build the correlation matrix for a trailing window.

        Preconditions:
            - 0 < lookback_minutes <= reader.max_lookback_minutes
            - symbols (if given) are registered

        Postconditions:
            - matrix[s][s] == 1.0 for every symbol
            - every off-diagonal entry lies in [-1, 1]
            - symbols with fewer than 2 samples in the window report
              mean 0 and standard deviation 0

        Args:
            lookback_minutes: Window length in minutes
            now: End of the window (defaults to the reader's clock)
            symbols: Symbols to include (defaults to every registered symbol)

        Returns:
            CorrelationMatrix

        Raises:
            InvalidWindowError: If lookback_minutes is out of range
        """
        lookback = self.reader.validate(lookback_minutes)
        now = self.reader.clock() if now is None else now
        symbols = tuple(self.reader.symbols if symbols is None else symbols)

        windows: Dict[str, PriceSeries] = {
            symbol: self.reader.read(symbol, lookback, now) for symbol in symbols
        }

        averages = {}
        standard_deviations = {}
        for symbol in symbols:
            summary = summarize(windows[symbol])
            averages[symbol] = summary.mean
            standard_deviations[symbol] = summary.std

        matrix = {symbol: {} for symbol in symbols}
        for i, symbol_a in enumerate(symbols):
            matrix[symbol_a][symbol_a] = 1.0
            for symbol_b in symbols[i + 1:]:
                if self.symmetric:
                    value = correlate(windows[symbol_a], windows[symbol_b]).correlation
                    matrix[symbol_a][symbol_b] = value
                    matrix[symbol_b][symbol_a] = value
                else:
                    matrix[symbol_a][symbol_b] = self._fresh_pair(symbol_a, symbol_b, lookback, now)
                    matrix[symbol_b][symbol_a] = self._fresh_pair(symbol_b, symbol_a, lookback, now)

        # Keep column order identical to row order
        matrix = {row: {col: matrix[row][col] for col in symbols} for row in symbols}

        return CorrelationMatrix(
            symbols=symbols,
            matrix=matrix,
            averages=averages,
            standard_deviations=standard_deviations,
            lookback_minutes=lookback,
        )

    def _fresh_pair(self, symbol_a: str, symbol_b: str, lookback: float, now: datetime) -> float:
        window_a = self.reader.read(symbol_a, lookback, now)
        window_b = self.reader.read(symbol_b, lookback, now)
        return correlate(window_a, window_b).correlation
