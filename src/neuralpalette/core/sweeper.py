"""
Background expiry sweep for the response cache.

Expired entries are normally dropped lazily on read. Keys that are never
read again would linger until evicted, so a daemon thread sweeps the cache
on a fixed interval regardless of traffic.
"""

import threading
from typing import Any, Optional

from neuralpalette.utils.logging_config import get_logger

logger = get_logger("sweeper")


class CacheSweeper:
    """
    Periodically calls ``sweep_expired()`` on a cache.

    Each sweep holds the cache lock only for its own pass, so reads and
    writes continue between sweeps.

    Example:
        >>> with CacheSweeper(cache, interval=300):
        ...     serve()
    """

    def __init__(self, cache: Any, interval: float = 300.0) -> None:
        """
        Args:
            cache: Anything with a ``sweep_expired() -> int`` method.
            interval: Seconds between sweeps (default: 5 minutes).
        """
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self.cache = cache
        self.interval = interval
        self.total_removed = 0
        self.sweeps = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="neuralpalette-cache-sweeper", daemon=True
        )
        self._thread.start()
        logger.debug("Cache sweeper started (every %.0fs)", self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def sweep_once(self) -> int:
        """Run one sweep now and return the number of entries removed."""
        removed = self.cache.sweep_expired()
        self.sweeps += 1
        self.total_removed += removed
        if removed > 0:
            logger.info("Cleaned %d expired cache entries", removed)
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.sweep_once()
            except Exception:
                # Keep the thread alive; the next tick retries
                logger.exception("Cache sweep failed")

    def __enter__(self) -> "CacheSweeper":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
