"""Background memory-pressure sweep for the OCR cache."""

import threading
from typing import TYPE_CHECKING

from winedoc.utils.logger import get_logger

if TYPE_CHECKING:
    from .content_cache import ContentCache

logger = get_logger(__name__)


class MemoryMonitor:
    """Periodically checks a cache's memory pressure on a daemon thread.

    Each tick purges expired entries, logs cache statistics when the cache
    has seen traffic, and lets the cache evict under memory pressure.

    Args:
        cache: The cache instance that owns this monitor.
        interval: Seconds between ticks.
    """

    def __init__(self, cache: "ContentCache", interval: float) -> None:
        self.cache = cache
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread if it is not already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="winedoc-cache-monitor", daemon=True
        )
        self._thread.start()
        logger.debug("Cache memory monitor started (interval=%ss)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the thread to stop and wait for it to exit.

        Args:
            timeout: Seconds to wait for the thread to finish.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.debug("Cache memory monitor stopped")

    def tick(self) -> str | None:
        """Run one monitoring pass.

        Returns:
            The memory action taken by the cache, if any.
        """
        self.cache.purge_expired()

        stats = self.cache.stats()
        if stats.hits + stats.misses > 0:
            status = self.cache.memory_status()
            logger.info(
                "Cache statistics: keys=%d hits=%d misses=%d hit_rate=%.2f%% "
                "evictions=%d memory_mb=%d within_limits=%s",
                stats.key_count,
                stats.hits,
                stats.misses,
                stats.hit_rate * 100,
                stats.evictions,
                status.heap_used // (1024 * 1024),
                status.within_limits,
            )

        return self.cache.check_memory()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Cache memory monitor tick failed")
