"""TTL response cache for fantasylink."""

import time
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, Any, Dict, Callable, Iterator, List, Mapping

import logging

from fantasylink.exceptions import CacheFullError
from fantasylink.models import CacheConfig
from fantasylink.oauth import percent_encode

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached payload with its expiry metadata."""

    data: bytes
    created_at: float
    expires_at: float
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def ttl_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class CacheStats:
    """Snapshot of cache contents and counters."""

    total_entries: int = 0
    expired_entries: int = 0
    total_bytes: int = 0
    total_access_count: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total cache lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests


class ReadWriteLock:
    """Lock allowing many concurrent readers or a single writer.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so a steady stream of reads cannot starve a write.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ResponseCache:
    """Bounded in-memory key to bytes cache with TTL expiry.

    Expired entries are treated as misses by ``get`` but stay in the store
    until ``cleanup`` runs. When full, the entry with the lowest access count
    is evicted (oldest first on ties).
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize response cache.

        Args:
            max_size: Maximum number of entries.
            default_ttl: TTL in seconds used when ``put`` gets none.
            clock: Wall clock in seconds.
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock or time.time

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._counter_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @classmethod
    def from_config(cls, config: CacheConfig, **kwargs: Any) -> "ResponseCache":
        return cls(max_size=config.max_size, default_ttl=config.default_ttl, **kwargs)

    def put(self, key: str, data: bytes, ttl: Optional[float] = None) -> None:
        """Store a private copy of ``data`` under ``key``.

        Raises:
            CacheFullError: If the cache cannot hold any entry.
        """
        if self.max_size < 1:
            raise CacheFullError("Cache has no capacity")

        effective_ttl = ttl if ttl is not None else self.default_ttl
        payload = bytes(data)

        with self._lock.write():
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict_one()
            # Reinsert so a replaced key counts as newest for tie-breaking.
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(
                data=payload,
                created_at=now,
                expires_at=now + effective_ttl,
            )

    def get(self, key: str) -> Optional[bytes]:
        """Return the payload for ``key`` if present and fresh."""
        with self._lock.read():
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                with self._counter_lock:
                    self._misses += 1
                return None

            with self._counter_lock:
                entry.access_count += 1
                self._hits += 1
            return entry.data

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get full cache entry including metadata."""
        with self._lock.read():
            return self._entries.get(key)

    def remove(self, key: str) -> bool:
        with self._lock.write():
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock.write():
            self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        with self._lock.write():
            now = self._clock()
            expired: List[str] = [
                key for key, entry in self._entries.items() if entry.is_expired(now)
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} expired entries")
        return len(expired)

    def size(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())

    def stats(self) -> CacheStats:
        with self._lock.read():
            now = self._clock()
            entries = list(self._entries.values())
            with self._counter_lock:
                return CacheStats(
                    total_entries=len(entries),
                    expired_entries=sum(1 for e in entries if e.is_expired(now)),
                    total_bytes=sum(e.size for e in entries),
                    total_access_count=sum(e.access_count for e in entries),
                    hits=self._hits,
                    misses=self._misses,
                    evictions=self._evictions,
                )

    def _evict_one(self) -> None:
        """Evict the least-read entry. Caller holds the write lock."""
        victim: Optional[str] = None
        lowest = None
        for key, entry in self._entries.items():
            if lowest is None or entry.access_count < lowest:
                lowest = entry.access_count
                victim = key

        if victim is not None:
            del self._entries[victim]
            self._evictions += 1
            logger.debug(f"Evicted cache entry {victim} (access_count={lowest})")


class CacheJanitor:
    """Background thread that periodically runs ``cleanup`` on a cache."""

    def __init__(self, cache: ResponseCache, interval: float = 60.0) -> None:
        self.cache = cache
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.cache.cleanup()
            except Exception:
                logger.exception("Cache cleanup failed")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="fantasylink-cache-janitor", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> "CacheJanitor":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()


def generate_cache_key(
    endpoint: str,
    params: Optional[Mapping[str, Any]] = None,
) -> str:
    """Generate a cache key from an endpoint and its query parameters.

    Args:
        endpoint: API endpoint.
        params: Query parameters.

    Returns:
        ``endpoint`` followed by ``&key=value`` for each parameter, sorted by
        key then value. Keys and values are percent-encoded so a value holding
        ``&`` or ``=`` cannot collide with a different parameter set.
    """
    if not params:
        return endpoint

    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((percent_encode(str(key)), percent_encode(str(v))) for v in value)
        else:
            pairs.append((percent_encode(str(key)), percent_encode(str(value))))

    return endpoint + "".join(f"&{key}={value}" for key, value in sorted(pairs))
