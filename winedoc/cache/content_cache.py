"""In-memory OCR result cache with TTL expiry and memory-pressure eviction.

Entries are kept in insertion order so eviction sweeps remove the oldest
writes first. All reads, writes and counter updates go through a single
lock, so one instance can be shared by concurrent requests.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from winedoc.utils.config import CacheConfig, MemoryLimits
from winedoc.utils.errors import CacheError
from winedoc.utils.logger import get_logger

from .keys import compute_cache_key
from .monitor import MemoryMonitor

logger = get_logger(__name__)

MemoryReader = Callable[[], tuple[int, int]]


@dataclass
class CacheEntry:
    """A single cached OCR text."""

    key: str
    value: str
    expires_at: float | None


@dataclass(frozen=True)
class CacheStatistics:
    """Snapshot of cache counters and storage size."""

    hits: int
    misses: int
    errors: int
    evictions: int
    memory_warnings: int
    key_count: int
    value_byte_size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass(frozen=True)
class MemoryStatus:
    """Process memory usage measured against the configured limits."""

    heap_used: int
    heap_total: int
    limits: MemoryLimits
    within_limits: bool


def process_memory() -> tuple[int, int]:
    """Read current process memory as ``(used, total)`` bytes."""
    info = psutil.Process().memory_info()
    return info.rss, info.vms


class ContentCache:
    """Key/value store for OCR text keyed by image content hash.

    Args:
        config: Cache sizing, TTL and memory settings.
        clock: Monotonic time source in seconds.
        memory_reader: Callable returning ``(used, total)`` process memory.
        start_monitor: Override for ``config.monitor_enabled``.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        memory_reader: MemoryReader = process_memory,
        start_monitor: bool | None = None,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._memory_reader = memory_reader
        self._lock = threading.RLock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._value_bytes = 0
        self._reset_counters()

        self.monitor = MemoryMonitor(self, interval=self.config.check_period)
        if self.config.monitor_enabled if start_monitor is None else start_monitor:
            self.monitor.start()

    def __enter__(self) -> "ContentCache":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop the background memory monitor."""
        self.monitor.stop()

    def _reset_counters(self) -> None:
        self._hits = 0
        self._misses = 0
        self._errors = 0
        self._evictions = 0
        self._memory_warnings = 0

    @staticmethod
    def compute_key(image_ref: str) -> str:
        """Derive the cache key for an image reference."""
        return compute_cache_key(image_ref)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.expires_at is not None and entry.expires_at <= now

    def _remove(self, key: str) -> CacheEntry:
        entry = self._entries.pop(key)
        self._value_bytes -= len(entry.value.encode("utf-8"))
        return entry

    def get(self, key: str) -> str | None:
        """Look up a cached value.

        Args:
            key: Cache key.

        Returns:
            The cached text, or ``None`` on a miss, an expired entry or an
            internal cache error.
        """
        try:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and self._is_expired(entry, self._clock()):
                    self._remove(key)
                    logger.debug("Cache item expired: %s", key)
                    entry = None

                if entry is None:
                    self._misses += 1
                    logger.debug("Cache miss: %s", key)
                    return None

                self._hits += 1
                logger.debug("Cache hit: %s", key)
                return entry.value
        except Exception as exc:
            with self._lock:
                self._errors += 1
            logger.error("Cache get error for %s: %s", key, exc)
            return None

    def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Insert or overwrite a cached value.

        Args:
            key: Cache key.
            value: OCR text to store.
            ttl: Lifetime in seconds. ``None`` uses the configured default,
                ``0`` never expires.

        Returns:
            ``True`` if the value was stored.
        """
        try:
            if not isinstance(value, str):
                raise CacheError(f"cannot store value of type {type(value).__name__}")
            lifetime = self.config.std_ttl if ttl is None else ttl

            with self._lock:
                now = self._clock()
                if key in self._entries:
                    self._remove(key)
                elif len(self._entries) >= self.config.max_keys:
                    self._purge_expired_locked(now)
                    if len(self._entries) >= self.config.max_keys:
                        raise CacheError(
                            f"cache full ({self.config.max_keys} keys)"
                        )

                self._entries[key] = CacheEntry(
                    key=key,
                    value=value,
                    expires_at=now + lifetime if lifetime > 0 else None,
                )
                self._value_bytes += len(value.encode("utf-8"))

            logger.debug(
                "Cache set: %s (length=%d, ttl=%s)", key, len(value), lifetime
            )
            return True
        except Exception as exc:
            with self._lock:
                self._errors += 1
            logger.error("Cache set error for %s: %s", key, exc)
            return False

    def delete(self, key: str) -> int:
        """Remove a key.

        Returns:
            Number of removed entries (0 or 1).
        """
        with self._lock:
            if key not in self._entries:
                return 0
            self._remove(key)
        logger.debug("Cache key deleted: %s", key)
        return 1

    def update_ttl(self, key: str, ttl: int) -> bool:
        """Reset the lifetime of a live entry.

        Args:
            key: Cache key.
            ttl: New lifetime in seconds from now; ``0`` never expires.

        Returns:
            ``False`` if the key is missing or already expired.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or self._is_expired(entry, now):
                return False
            entry.expires_at = now + ttl if ttl > 0 else None
        logger.debug("Cache TTL updated: %s (ttl=%s)", key, ttl)
        return True

    def _purge_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            self._remove(key)
        return len(expired)

    def purge_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of removed entries.
        """
        with self._lock:
            removed = self._purge_expired_locked(self._clock())
        if removed:
            logger.debug("Purged %d expired cache entries", removed)
        return removed

    def stats(self) -> CacheStatistics:
        """Return a snapshot of the cache counters."""
        with self._lock:
            return CacheStatistics(
                hits=self._hits,
                misses=self._misses,
                errors=self._errors,
                evictions=self._evictions,
                memory_warnings=self._memory_warnings,
                key_count=len(self._entries),
                value_byte_size=self._value_bytes,
            )

    def clear(self) -> None:
        """Drop all entries and reset every counter."""
        with self._lock:
            self._entries.clear()
            self._value_bytes = 0
            self._reset_counters()
        logger.info("Cache cleared")

    def _evict(self, count: int) -> int:
        with self._lock:
            count = min(count, len(self._entries))
            for _ in range(count):
                key = next(iter(self._entries))
                self._remove(key)
            self._evictions += count
            return count

    def force_cleanup(self, percent: float = 50) -> int:
        """Evict a share of the entries, oldest writes first.

        Args:
            percent: Share of current entries to remove, 0 to 100.

        Returns:
            Number of removed entries.
        """
        if not 0 <= percent <= 100:
            raise ValueError(f"percent must be between 0 and 100, got {percent}")

        with self._lock:
            removed = self._evict(int(len(self._entries) * percent / 100))
            remaining = len(self._entries)

        logger.info(
            "Forced cache cleanup: removed=%d remaining=%d percent=%s",
            removed,
            remaining,
            percent,
        )
        return removed

    def memory_status(self) -> MemoryStatus:
        """Measure process memory against the configured limits."""
        used, total = self._memory_reader()
        limits = self.config.memory_limits
        return MemoryStatus(
            heap_used=used,
            heap_total=total,
            limits=limits,
            within_limits=used < limits.max_heap_usage,
        )

    def check_memory(self) -> str | None:
        """Evict or warn depending on current memory pressure.

        Above the cleanup threshold half of the entries are evicted; above
        the warning threshold only ``memory_warnings`` is incremented.

        Returns:
            ``"cleanup"``, ``"warning"`` or ``None``.
        """
        used, _ = self._memory_reader()
        limits = self.config.memory_limits
        mb = 1024 * 1024

        if used > limits.cleanup_threshold:
            logger.warning(
                "Memory usage high (%d MB > %d MB), performing cache cleanup",
                used // mb,
                limits.cleanup_threshold // mb,
            )
            with self._lock:
                removed = self._evict(len(self._entries) // 2)
                remaining = len(self._entries)
            logger.info(
                "Cache cleanup completed: removed=%d remaining=%d",
                removed,
                remaining,
            )
            return "cleanup"

        if used > limits.warning_threshold:
            with self._lock:
                self._memory_warnings += 1
                key_count = len(self._entries)
            logger.warning(
                "Memory usage approaching limit (%d MB > %d MB), cache keys=%d",
                used // mb,
                limits.warning_threshold // mb,
                key_count,
            )
            return "warning"

        return None
