"""
Tests for entity classes.

Tests cover:
- Sample invariants and wire format
- PriceSeries invariants and conversions
- CorrelationResult / CorrelationMatrix serialisation
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from tickerstats.entities import (
    CorrelationMatrix,
    CorrelationResult,
    PriceSeries,
    Sample,
    WindowAverage,
    format_timestamp,
)
from tickerstats.errors import UnknownSymbolError

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestSample:
    """Tests for Sample."""

    def test_value_coerced_to_float(self):
        """Test that integer prices are stored as floats."""
        sample = Sample(10, T0)
        assert sample.value == 10.0
        assert isinstance(sample.value, float)

    def test_sample_is_immutable(self):
        """Test that samples cannot be modified."""
        sample = Sample(1.0, T0)
        with pytest.raises(AttributeError):
            sample.value = 2.0

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "1.0", None, True])
    def test_invalid_value_raises(self, value):
        """Test that non-finite or non-numeric values are rejected."""
        with pytest.raises(ValueError):
            Sample(value, T0)

    def test_naive_timestamp_raises(self):
        """Test that naive datetimes are rejected."""
        with pytest.raises(ValueError, match="timezone-aware"):
            Sample(1.0, datetime(2024, 1, 1))

    def test_to_dict(self):
        """Test the wire format."""
        assert Sample(12.5, T0).to_dict() == {"price": 12.5, "lastUpdatedAt": "2024-01-01T12:00:00.000Z"}

    def test_format_timestamp_converts_to_utc(self):
        """Test that offsets are normalised to Z."""
        plus_two = timezone(timedelta(hours=2))
        assert format_timestamp(datetime(2024, 1, 1, 14, 0, tzinfo=plus_two)) == "2024-01-01T12:00:00.000Z"


class TestPriceSeries:
    """Tests for PriceSeries."""

    def test_basic_properties(self):
        """Test values, timestamps and length."""
        samples = [Sample(1.0, T0), Sample(2.0, T0 + timedelta(seconds=10))]
        series = PriceSeries("AAPL", samples)
        assert len(series) == 2
        assert series.values == [1.0, 2.0]
        assert series.timestamps == [T0, T0 + timedelta(seconds=10)]
        assert series[0] == samples[0]
        assert list(series) == samples

    def test_unsorted_raises(self):
        """Test that out-of-order samples are rejected."""
        with pytest.raises(ValueError, match="sorted"):
            PriceSeries("AAPL", [Sample(1.0, T0 + timedelta(seconds=10)), Sample(2.0, T0)])

    def test_non_sample_raises(self):
        """Test that only Samples are accepted."""
        with pytest.raises(ValueError, match="expected Sample"):
            PriceSeries("AAPL", [(1.0, T0)])

    def test_copy_is_independent(self):
        """Test that mutating the input list does not affect the series."""
        samples = [Sample(1.0, T0)]
        series = PriceSeries("AAPL", samples)
        samples.append(Sample(2.0, T0))
        assert len(series) == 1

    def test_to_series(self):
        """Test the pandas view."""
        series = PriceSeries("AAPL", [Sample(1.0, T0), Sample(2.0, T0 + timedelta(seconds=10))])
        s = series.to_series()
        assert isinstance(s, pd.Series)
        assert s.name == "AAPL"
        assert list(s) == [1.0, 2.0]
        assert s.index[0] == pd.Timestamp(T0)

    def test_empty_to_series(self):
        """Test the pandas view of an empty series."""
        s = PriceSeries("AAPL").to_series()
        assert len(s) == 0
        assert s.dtype == "float64"

    def test_equality(self):
        """Test value equality."""
        assert PriceSeries("A", [Sample(1.0, T0)]) == PriceSeries("A", [Sample(1.0, T0)])
        assert PriceSeries("A", [Sample(1.0, T0)]) != PriceSeries("B", [Sample(1.0, T0)])

    def test_repr(self):
        """Test string representation."""
        assert repr(PriceSeries("AAPL", [Sample(1.0, T0)])) == "PriceSeries(AAPL, 1 samples)"


class TestResults:
    """Tests for result containers."""

    def test_degenerate_correlation(self):
        """Test the zero-valued correlation result."""
        result = CorrelationResult.degenerate("A", "B")
        assert result.correlation == 0.0
        assert result.n_observations == 0
        assert result.to_dict() == {
            "correlation": 0.0,
            "stocks": {
                "A": {"averagePrice": 0.0, "priceHistory": []},
                "B": {"averagePrice": 0.0, "priceHistory": []},
            },
        }

    def test_correlation_repr(self):
        """Test string representation."""
        result = CorrelationResult("AAPL", "MSFT", 0.85, 1.0, 2.0)
        assert "AAPL-MSFT" in repr(result)
        assert "0.8500" in repr(result)

    def test_window_average_to_dict(self):
        """Test the average wire format."""
        average = WindowAverage("A", 1.5, PriceSeries("A", [Sample(1.5, T0)]))
        assert average.to_dict() == {
            "averageStockPrice": 1.5,
            "priceHistory": [{"price": 1.5, "lastUpdatedAt": "2024-01-01T12:00:00.000Z"}],
        }

    def test_matrix_to_dict(self):
        """Test the matrix wire format."""
        matrix = CorrelationMatrix(
            symbols=("A", "B"),
            matrix={"A": {"A": 1.0, "B": 0.5}, "B": {"A": 0.5, "B": 1.0}},
            averages={"A": 1.0, "B": 2.0},
            standard_deviations={"A": 0.1, "B": 0.2},
        )
        assert matrix.to_dict()["standardDeviations"] == {"A": 0.1, "B": 0.2}
        assert matrix["A"]["B"] == 0.5


class TestErrors:
    """Tests for error messages."""

    def test_unknown_symbol_message(self):
        """Test that the message is not wrapped in quotes like a KeyError."""
        error = UnknownSymbolError("NFLX")
        assert str(error) == "Ticker 'NFLX' not found."
        assert error.symbol == "NFLX"
        assert isinstance(error, KeyError)
