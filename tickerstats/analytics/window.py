"""
Trailing-window reads over the series store.

A window is the last `lookback_minutes` minutes before `now`. Reads take a
snapshot of the symbol first and filter the copy, so the result stays
consistent while ingestion keeps appending.
"""

import math
from datetime import datetime, timedelta, timezone
from numbers import Real
from typing import Callable, Optional

from tickerstats.entities import PriceSeries
from tickerstats.errors import InvalidWindowError, UnknownSymbolError
from tickerstats.store import SeriesStore

MAX_LOOKBACK_MINUTES = 60


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def validate_lookback(lookback_minutes, max_lookback_minutes: float = MAX_LOOKBACK_MINUTES) -> float:
    """
    Check that a lookback lies in (0, max_lookback_minutes].

    The ceiling never exceeds MAX_LOOKBACK_MINUTES, whatever is passed.

    Args:
        lookback_minutes: Requested window length in minutes
        max_lookback_minutes: Longest window the retained history can serve

    Returns:
        lookback_minutes as a float

    Raises:
        InvalidWindowError: If lookback_minutes is not a real number or is
            outside the supported range
    """
    if isinstance(lookback_minutes, bool) or not isinstance(lookback_minutes, Real):
        raise InvalidWindowError(f"minutes must be a number, got {lookback_minutes!r}")
    max_lookback_minutes = min(max_lookback_minutes, MAX_LOOKBACK_MINUTES)
    lookback = float(lookback_minutes)
    if math.isnan(lookback) or lookback <= 0 or lookback > max_lookback_minutes:
        raise InvalidWindowError(
            f"minutes must be in (0, {max_lookback_minutes:g}], got {lookback_minutes!r}"
        )
    return lookback


def window_start(now: datetime, lookback_minutes: float) -> datetime:
    """Return the earliest timestamp included in a window ending at now."""
    return now - timedelta(minutes=lookback_minutes)


def filter_window(series: PriceSeries, lookback_minutes: float, now: datetime) -> PriceSeries:
    """
    Keep the samples with timestamp >= now - lookback_minutes.

    Filters generically rather than trimming a prefix, so the result is
    correct even if a series was not strictly ordered. Order is preserved.

    Args:
        series: Snapshot to filter
        lookback_minutes: Window length in minutes (already validated)
        now: End of the window

    Returns:
        New PriceSeries containing only the samples inside the window
    """
    cutoff = window_start(now, lookback_minutes)
    return PriceSeries(series.symbol, [s for s in series if s.timestamp >= cutoff])


class WindowedReader:
    """
    Reads trailing windows of a symbol's history from a SeriesStore.

    Representation Invariants:
        - 0 < max_lookback_minutes <= MAX_LOOKBACK_MINUTES
    """

    def __init__(
        self,
        store: SeriesStore,
        max_lookback_minutes: float = MAX_LOOKBACK_MINUTES,
        clock: Optional[Callable[[], datetime]] = None
    ):
        if max_lookback_minutes <= 0:
            raise ValueError("max_lookback_minutes must be positive")
        if max_lookback_minutes > MAX_LOOKBACK_MINUTES:
            raise ValueError(f"max_lookback_minutes must be at most {MAX_LOOKBACK_MINUTES}")
        self.store = store
        self.max_lookback_minutes = max_lookback_minutes
        self.clock = clock or utc_now

    @property
    def symbols(self):
        return self.store.symbols

    def validate(self, lookback_minutes) -> float:
        return validate_lookback(lookback_minutes, self.max_lookback_minutes)

    def read(self, symbol: str, lookback_minutes, now: Optional[datetime] = None) -> PriceSeries:
        """
        Return the samples of symbol inside the trailing window.

        Preconditions:
            - symbol is registered in the store
            - 0 < lookback_minutes <= max_lookback_minutes

        Postconditions:
            - result is an independent snapshot in chronological order
            - every sample has timestamp >= now - lookback_minutes
            - an empty window yields an empty PriceSeries, not an error

        Args:
            symbol: Ticker symbol
            lookback_minutes: Window length in minutes
            now: End of the window (defaults to the reader's clock)

        Returns:
            PriceSeries with the samples inside the window

        Raises:
            UnknownSymbolError: If symbol is not registered
            InvalidWindowError: If lookback_minutes is out of range
        """
        if symbol not in self.store:
            raise UnknownSymbolError(symbol)
        lookback = self.validate(lookback_minutes)
        now = self.clock() if now is None else now

        return filter_window(self.store.snapshot(symbol), lookback, now)
