# linkdle/services/cache.py
import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from linkdle.services.cache_store import CacheStore

logger = logging.getLogger("linkdle.services.cache")  # Logger for this module

V = TypeVar("V")


class LoadCancelledError(Exception):
    """Raised to callers that were sharing a load whose owner got cancelled."""


@dataclass
class CacheEntry(Generic[V]):
    value: V
    created_at: float


class TTLCache(Generic[V]):
    """
    Bounded key -> value store whose entries expire `ttl_seconds` after they were written.

    - `get` treats an expired entry as absent and drops it.
    - `set` on a full cache first evicts the oldest ceil(capacity * eviction_fraction)
      entries by creation time.
    - `get_or_load` runs the read / load / write sequence for one key as a single unit and
      lets concurrent callers for the same key share the one in-flight load.

    A `CacheStore` may be injected to snapshot the cache across restarts. Values must then
    be JSON-friendly (bools, numbers, lists, dicts).
    """

    def __init__(
        self,
        name: str,
        capacity: int,
        ttl_seconds: float,
        store: Optional[CacheStore] = None,
        eviction_fraction: float = 0.2,
        clock: Callable[[], float] = time.time,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.name = name
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.store = store
        self.eviction_fraction = eviction_fraction
        self._clock = clock
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._in_flight: Dict[str, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not None

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def _is_expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.created_at > self.ttl_seconds

    def _lookup(self, key: str) -> Optional[CacheEntry[V]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> Optional[V]:
        entry = self._lookup(key)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: V) -> None:
        if key not in self._entries and len(self._entries) >= self.capacity:
            self._evict_oldest(math.ceil(self.capacity * self.eviction_fraction))
        self._entries[key] = CacheEntry(value=value, created_at=self._clock())

    def _evict_oldest(self, count: int) -> None:
        oldest = sorted(self._entries.items(), key=lambda item: item[1].created_at)[:count]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug(f"Cache '{self.name}' evicted {len(oldest)} oldest entries.")

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        """
        Returns the cached value for `key`, calling `loader` on a miss.

        A loader that raises leaves nothing cached; the exception reaches every caller
        that was waiting on that load.
        """
        entry = self._lookup(key)
        if entry is not None:
            self.hits += 1
            return entry.value

        pending = self._in_flight.get(key)
        if pending is not None:
            self.hits += 1
            return await asyncio.shield(pending)

        self.misses += 1
        future = asyncio.get_running_loop().create_future()
        # Mark the exception as retrieved when nobody else was waiting for it.
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._in_flight[key] = future
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.set_exception(LoadCancelledError(f"load of '{key}' in cache '{self.name}' was cancelled"))
            raise
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            self.set(key, value)
            future.set_result(value)
            return value
        finally:
            self._in_flight.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def snapshot(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [(key, {"value": entry.value, "created_at": entry.created_at}) for key, entry in self._entries.items()]

    def restore(self) -> int:
        """Loads the stored snapshot, skipping expired or malformed entries. Never raises."""
        if self.store is None:
            return 0
        try:
            stored = self.store.load(self.name)
        except Exception as e:
            logger.warning(f"Failed to load cache '{self.name}': {e}", exc_info=True)
            return 0

        now = self._clock()
        restored = 0
        for item in stored:
            try:
                key, raw = item
                entry = CacheEntry(value=raw["value"], created_at=float(raw["created_at"]))
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Ignoring malformed entry in stored cache '{self.name}'.")
                continue
            if self._is_expired(entry, now):
                continue
            self._entries[str(key)] = entry
            restored += 1

        overflow = len(self._entries) - self.capacity
        if overflow > 0:
            self._evict_oldest(overflow)
        logger.info(f"Restored {restored} entries into cache '{self.name}'.")
        return restored

    async def persist_async(self) -> bool:
        """
        Writes the current snapshot to the store. Best effort: failures are logged.

        The snapshot is taken on the event loop; only the store write runs in a worker thread.
        """
        if self.store is None:
            return False
        self.purge_expired()
        entries = self.snapshot()
        try:
            await asyncio.to_thread(self.store.save, self.name, entries)
        except Exception as e:
            logger.warning(f"Failed to persist cache '{self.name}': {e}", exc_info=True)
            return False
        return True

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "name": self.name,
            "size": len(self._entries),
            "capacity": self.capacity,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate_percent": round(self.hits / lookups * 100, 2) if lookups else 0.0,
        }
