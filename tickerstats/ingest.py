"""
Periodic ingestion of simulated prices into the series store.

Responsibilities:
- Ask the price source for one new price per symbol per tick
- Stamp every symbol of a tick with the same timestamp so series align
- Drop prices that arrive too slowly or fail, without stopping the loop
- Run on a background thread with graceful stop
"""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from tickerstats.analytics.window import utc_now
from tickerstats.data_sources.random_walk import PriceSource
from tickerstats.entities import Sample
from tickerstats.errors import IngestionError
from tickerstats.store import SeriesStore

logger = logging.getLogger(__name__)


class IngestionDriver:
    """
    Pushes one sample per symbol into a SeriesStore every tick.

    A source may return None for a symbol, take longer than
    fetch_timeout_seconds, or raise. In each case the symbol simply gets
    no sample for that tick.
    """

    def __init__(
        self,
        store: SeriesStore,
        source: PriceSource,
        tick_interval_seconds: float = 10.0,
        fetch_timeout_seconds: float = 0.5,
        clock: Optional[Callable[[], datetime]] = None,
        timer: Callable[[], float] = time.monotonic
    ):
        if tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be positive")
        if fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be positive")

        self.store = store
        self.source = source
        self.tick_interval_seconds = tick_interval_seconds
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.clock = clock or utc_now
        self._timer = timer
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()
        self.ticks = 0

    def _fetch(self, symbol: str) -> Optional[float]:
        latest = self.store.latest(symbol)
        last_price = latest.value if latest is not None else None

        started = self._timer()
        try:
            price = self.source.next_price(symbol, last_price)
        except Exception as e:
            raise IngestionError(f"price source failed for {symbol}: {e}") from e
        elapsed = self._timer() - started

        if elapsed > self.fetch_timeout_seconds:
            logger.warning(
                f"[INGEST] {symbol} price took {elapsed:.3f}s "
                f"(limit {self.fetch_timeout_seconds:.3f}s), dropped"
            )
            return None
        return price

    def tick(self, now: Optional[datetime] = None) -> Dict[str, Optional[Sample]]:
        """
        Append one new sample per symbol.

        Args:
            now: Timestamp shared by every sample of this tick
                (defaults to the driver's clock)

        Returns:
            Mapping symbol -> stored Sample, or None where nothing was stored
        """
        now = self.clock() if now is None else now
        results: Dict[str, Optional[Sample]] = {}

        for symbol in self.store.symbols:
            results[symbol] = None
            try:
                price = self._fetch(symbol)
                if price is None:
                    logger.debug(f"[INGEST] {symbol} no price this tick")
                    continue
                results[symbol] = self.store.append(symbol, price, now)
                logger.debug(f"[INGEST] {symbol} @ {price} ({self.store.count(symbol)} retained)")
            except (IngestionError, ValueError) as e:
                logger.warning(f"[INGEST] {symbol} skipped: {e}")

        self.ticks += 1
        stored = sum(1 for sample in results.values() if sample is not None)
        logger.debug(f"[INGEST] tick {self.ticks}: stored {stored}/{len(results)} prices")
        return results

    def _run(self):
        while not self._stop_event.wait(self.tick_interval_seconds):
            try:
                self.tick()
            except Exception:
                logger.exception("[INGEST] tick failed")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start ticking on a daemon thread; no-op if already running."""
        with self._thread_lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="tickerstats-ingest",
                daemon=True
            )
            self._thread.start()
            logger.info(
                f"[INGEST] Started for: {', '.join(self.store.symbols)} "
                f"every {self.tick_interval_seconds:g}s"
            )

    def stop(self, timeout: float = 3.0):
        """Signal the ticking thread to stop and wait for it."""
        with self._thread_lock:
            self._stop_event.set()
            if self._thread is not None and self._thread.is_alive():
                self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("[INGEST] Stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
