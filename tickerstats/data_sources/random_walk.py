"""
Simulated price feed.

This module provides the pluggable price source consumed by the
ingestion driver, plus a random-walk implementation used when no real
feed is configured.
"""

from typing import Optional, Protocol

import numpy as np


class PriceSource(Protocol):
    """
    Anything that can produce the next price for a symbol.

    Returning None means the source has no price for this tick; the
    ingestion driver skips the symbol without treating it as an error.
    """

    def next_price(self, symbol: str, last_price: Optional[float]) -> Optional[float]:
        ...


class RandomWalkSource:
    """
    Random-walk price generator.

    The first price of a symbol is drawn uniformly from [0, initial_scale).
    Each later price moves by a uniform step in [-max_step, max_step).
    Prices are rounded to `decimals` places.

    Representation Invariants:
        - initial_scale > 0
        - max_step >= 0
        - decimals >= 0
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        initial_scale: float = 1000.0,
        max_step: float = 10.0,
        decimals: int = 4
    ):
        if initial_scale <= 0:
            raise ValueError("initial_scale must be positive")
        if max_step < 0:
            raise ValueError("max_step must be non-negative")
        if decimals < 0:
            raise ValueError("decimals must be non-negative")

        self.rng = np.random.default_rng(seed)
        self.initial_scale = initial_scale
        self.max_step = max_step
        self.decimals = decimals

    def next_price(self, symbol: str, last_price: Optional[float]) -> Optional[float]:
        """
        Produce the next price for symbol.

        Args:
            symbol: Ticker symbol (unused; every symbol walks independently)
            last_price: Previous price, or None for the first tick

        Returns:
            New price rounded to self.decimals places
        """
        if last_price is None:
            base = self.rng.random() * self.initial_scale
        else:
            base = last_price
        step = (self.rng.random() - 0.5) * 2 * self.max_step
        return round(float(base + step), self.decimals)
