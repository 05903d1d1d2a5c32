"""
Tests for the correlation matrix builder.

Tests cover:
- Diagonal fixed at 1.0
- Mirrored pairs match independently computed ordered pairs
- Per-symbol averages and standard deviations
- Degenerate and invalid windows
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from tickerstats.analytics.matrix import MatrixBuilder
from tickerstats.analytics.stats import correlate
from tickerstats.analytics.window import WindowedReader
from tickerstats.errors import InvalidWindowError
from tickerstats.store import SeriesStore

NOW = datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc)
SYMBOLS = ["AAPL", "GOOGL", "TSLA", "MSFT", "AMZN"]


def random_store(n: int = 120, seed: int = 42) -> SeriesStore:
    """Store with n shared-timestamp ticks of random-walk prices."""
    rng = np.random.default_rng(seed)
    store = SeriesStore(SYMBOLS, capacity=360)
    prices = {symbol: rng.uniform(100, 1000) for symbol in SYMBOLS}
    for k in range(n):
        at = NOW - timedelta(seconds=10 * (n - 1 - k))
        for symbol in SYMBOLS:
            prices[symbol] += rng.uniform(-10, 10)
            store.append(symbol, round(prices[symbol], 4), at)
    return store


class TestMatrixBuilder:
    """Tests for MatrixBuilder.build."""

    def test_diagonal_is_exactly_one(self):
        """Test that matrix[X][X] == 1.0 for every symbol."""
        matrix = MatrixBuilder(WindowedReader(random_store())).build(10, NOW)
        for symbol in SYMBOLS:
            assert matrix[symbol][symbol] == 1.0

    def test_diagonal_one_even_without_data(self):
        """Test that the diagonal is fixed without computation."""
        store = SeriesStore(SYMBOLS)
        matrix = MatrixBuilder(WindowedReader(store)).build(10, NOW)
        for symbol in SYMBOLS:
            assert matrix[symbol][symbol] == 1.0
            for other in SYMBOLS:
                if other != symbol:
                    assert matrix[symbol][other] == 0.0

    def test_shape_and_order(self):
        """Test that rows and columns follow the registered symbol order."""
        matrix = MatrixBuilder(WindowedReader(random_store())).build(10, NOW)
        assert matrix.symbols == tuple(SYMBOLS)
        assert list(matrix.matrix) == SYMBOLS
        for row in matrix.matrix.values():
            assert list(row) == SYMBOLS

    def test_off_diagonal_matches_correlate(self):
        """Test each entry against a direct correlate call."""
        reader = WindowedReader(random_store())
        matrix = MatrixBuilder(reader).build(15, NOW)
        for a in SYMBOLS:
            for b in SYMBOLS:
                if a == b:
                    continue
                expected = correlate(reader.read(a, 15, NOW), reader.read(b, 15, NOW)).correlation
                assert matrix[a][b] == expected
                assert -1.0 <= matrix[a][b] <= 1.0

    def test_mirrored_equals_independent(self):
        """Test that the mirrored build equals computing every ordered pair."""
        reader = WindowedReader(random_store(seed=11))
        mirrored = MatrixBuilder(reader, symmetric=True).build(20, NOW)
        independent = MatrixBuilder(reader, symmetric=False).build(20, NOW)
        assert mirrored.matrix == independent.matrix

    def test_averages_and_standard_deviations(self):
        """Test per-symbol summaries against pandas."""
        reader = WindowedReader(random_store())
        matrix = MatrixBuilder(reader).build(5, NOW)
        for symbol in SYMBOLS:
            values = pd.Series(reader.read(symbol, 5, NOW).values)
            assert matrix.averages[symbol] == pytest.approx(round(values.mean(), 6), abs=1e-6)
            assert matrix.standard_deviations[symbol] == pytest.approx(round(values.std(ddof=1), 6), abs=1e-6)

    def test_short_window_summaries_are_zero(self):
        """Test that a symbol with one sample in the window reports 0/0."""
        store = SeriesStore(["AAPL", "MSFT"])
        store.append("AAPL", 100.0, NOW)
        store.append("MSFT", 50.0, NOW - timedelta(minutes=1))
        store.append("MSFT", 52.0, NOW)
        matrix = MatrixBuilder(WindowedReader(store)).build(5, NOW)
        assert matrix.averages["AAPL"] == 0.0
        assert matrix.standard_deviations["AAPL"] == 0.0
        assert matrix.averages["MSFT"] == 51.0
        assert matrix["AAPL"]["MSFT"] == 0.0

    def test_subset_of_symbols(self):
        """Test building over an explicit symbol subset."""
        matrix = MatrixBuilder(WindowedReader(random_store())).build(10, NOW, symbols=["TSLA", "AAPL"])
        assert matrix.symbols == ("TSLA", "AAPL")
        assert set(matrix.matrix) == {"TSLA", "AAPL"}

    def test_to_frame(self):
        """Test the DataFrame view."""
        matrix = MatrixBuilder(WindowedReader(random_store())).build(10, NOW)
        frame = matrix.to_frame()
        assert list(frame.index) == SYMBOLS
        assert list(frame.columns) == SYMBOLS
        assert (np.diag(frame.values) == 1.0).all()
        assert frame.loc["AAPL", "MSFT"] == matrix["AAPL"]["MSFT"]

    def test_lookback_recorded(self):
        """Test that the window length is carried on the result."""
        matrix = MatrixBuilder(WindowedReader(random_store())).build(30, NOW)
        assert matrix.lookback_minutes == 30.0

    @pytest.mark.parametrize("minutes", [0, -5, 61])
    def test_invalid_window_raises(self, minutes):
        """Test that the only failure mode is an invalid window."""
        with pytest.raises(InvalidWindowError):
            MatrixBuilder(WindowedReader(random_store())).build(minutes, NOW)
