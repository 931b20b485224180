"""In-memory cache for resolved metadata.

Entries expire a fixed time after they are written and the least recently
used entry is evicted when the cache is full. Concurrent requests for the
same key share a single in-flight computation.
"""

import asyncio
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

from desicatalog.config import settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class EnrichmentCache(Generic[T]):
    """LRU cache with per-entry TTL and in-flight deduplication.

    Expiry is checked lazily on read. A hit moves the entry to the most
    recently used position. All map mutations happen under one lock and
    never across an await.

    Example:
        cache = EnrichmentCache(max_entries=500, ttl=43200)
        meta = await cache.dedupe("Kesari 2 2025", lambda: resolver.resolve(ref))
    """

    def __init__(
        self,
        max_entries: int | None = None,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            max_entries: Capacity. Uses settings.cache_max_entries if None.
            ttl: Time-to-live in seconds. Uses settings.cache_ttl if None.
            clock: Monotonic time source, replaceable in tests.
        """
        self._max_entries = max_entries if max_entries is not None else settings.cache_max_entries
        if self._max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl if ttl is not None else settings.cache_ttl
        self._clock = clock
        self._entries: OrderedDict[str, tuple[T, float]] = OrderedDict()
        self._inflight: dict[str, asyncio.Future[T]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def inflight_count(self) -> int:
        """Number of resolutions currently running."""
        with self._lock:
            return len(self._inflight)

    def _get_locked(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("enrichment_cache_expired", key=key)
            return None

        self._entries.move_to_end(key)
        return value

    def get(self, key: str) -> T | None:
        """Get a live value and mark it most recently used.

        Args:
            key: Cache key

        Returns:
            Cached value, or None if missing or expired (expired entries are removed)
        """
        with self._lock:
            return self._get_locked(key)

    def put(self, key: str, value: T) -> None:
        """Store a value, evicting the least recently used entry when full.

        Args:
            key: Cache key
            value: Value to cache
        """
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            while len(self._entries) >= self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("enrichment_cache_evict", key=evicted)
            self._entries[key] = (value, self._clock() + self._ttl)

    def clear(self) -> None:
        """Remove all cached values. In-flight resolutions are unaffected."""
        with self._lock:
            self._entries.clear()

    async def dedupe(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value or compute it once for all concurrent callers.

        The first caller for a missing key runs ``compute``, caches the result
        and shares it with every caller that arrived meanwhile. A failure is
        propagated to all of them and nothing is cached.

        Args:
            key: Cache key
            compute: Zero-argument coroutine factory producing the value

        Returns:
            The cached or freshly computed value
        """
        with self._lock:
            cached = self._get_locked(key)
            if cached is not None:
                logger.debug("enrichment_cache_hit", key=key)
                return cached

            future = self._inflight.get(key)
            is_owner = future is None
            if future is None:
                future = asyncio.get_running_loop().create_future()
                self._inflight[key] = future

        if not is_owner:
            logger.debug("enrichment_cache_join_inflight", key=key)
            # Shielded so a cancelled waiter does not cancel the shared result
            return await asyncio.shield(future)

        logger.debug("enrichment_cache_miss", key=key)
        try:
            value = await compute()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure is not reported at GC
            future.exception()
            raise
        else:
            self.put(key, value)
            future.set_result(value)
            return value
        finally:
            with self._lock:
                self._inflight.pop(key, None)
