"""
Bounded in-memory storage for per-symbol price history.

Each registered symbol owns a fixed-capacity buffer guarded by its own
lock. Appends evict the oldest sample once the buffer is full, and reads
only ever return copies, so callers never hold a reference to live storage.
"""

import threading
from collections import deque
from datetime import datetime
from typing import Deque, Dict, Iterable, Optional, Tuple

from tickerstats.entities import PriceSeries, Sample
from tickerstats.errors import UnknownSymbolError


class SeriesStore:
    """
    Thread-safe store of bounded, time-ordered sample buffers.

    The symbol set is fixed at construction; there is no way to add or
    remove a symbol later, and no reset. Capacity eviction is the only way
    a buffer shrinks.

    Representation Invariants:
        - capacity > 0
        - every buffer holds at most capacity samples
        - every buffer is sorted by timestamp (non-decreasing)
    """

    def __init__(self, symbols: Iterable[str], capacity: int = 360):
        """
        Initialize the store with an empty buffer per symbol.

        Preconditions:
            - symbols is non-empty
            - capacity > 0

        Postconditions:
            - every symbol has an empty buffer
        """
        symbols = tuple(dict.fromkeys(symbols))
        if not symbols:
            raise ValueError("symbols cannot be empty")
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        self._capacity = capacity
        self._buffers: Dict[str, Deque[Sample]] = {
            symbol: deque(maxlen=capacity) for symbol in symbols
        }
        self._locks: Dict[str, threading.Lock] = {
            symbol: threading.Lock() for symbol in symbols
        }

    @property
    def symbols(self) -> Tuple[str, ...]:
        """Return the registered symbols in registration order."""
        return tuple(self._buffers)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._buffers

    def _lookup(self, symbol: str) -> Tuple[Deque[Sample], threading.Lock]:
        try:
            return self._buffers[symbol], self._locks[symbol]
        except KeyError:
            raise UnknownSymbolError(symbol) from None

    def append(self, symbol: str, value: float, timestamp: datetime) -> Sample:
        """
        Append a sample, evicting the oldest one if the buffer is full.

        Preconditions:
            - symbol is registered
            - timestamp is not earlier than the latest stored timestamp

        Postconditions:
            - the new sample is the last element of the buffer
            - len(buffer) == min(appends so far, capacity)

        Args:
            symbol: Registered ticker symbol
            value: Observed price
            timestamp: Observation instant (timezone-aware)

        Returns:
            The stored Sample

        Raises:
            UnknownSymbolError: If symbol is not registered
            ValueError: If the sample is invalid or older than the latest one
        """
        buffer, lock = self._lookup(symbol)
        sample = Sample(value=value, timestamp=timestamp)

        with lock:
            if buffer and sample.timestamp < buffer[-1].timestamp:
                raise ValueError(
                    f"timestamps must be non-decreasing for {symbol}: "
                    f"{sample.timestamp.isoformat()} < {buffer[-1].timestamp.isoformat()}"
                )
            # deque(maxlen=...) drops the leftmost element on overflow
            buffer.append(sample)

        return sample

    def snapshot(self, symbol: str) -> PriceSeries:
        """
        Return an independent copy of a symbol's full history.

        Raises:
            UnknownSymbolError: If symbol is not registered
        """
        buffer, lock = self._lookup(symbol)
        with lock:
            samples = tuple(buffer)
        return PriceSeries(symbol, samples)

    def latest(self, symbol: str) -> Optional[Sample]:
        """Return the most recent sample, or None if nothing was stored yet."""
        buffer, lock = self._lookup(symbol)
        with lock:
            return buffer[-1] if buffer else None

    def count(self, symbol: str) -> int:
        """Return the number of samples currently stored for symbol."""
        buffer, lock = self._lookup(symbol)
        with lock:
            return len(buffer)

    def __repr__(self) -> str:
        return f"SeriesStore({len(self._buffers)} symbols, capacity={self._capacity})"
