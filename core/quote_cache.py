"""
Quote cache and single-flight request collapsing.

QuoteCache holds provider unit costs keyed by (destination country, quote
key) for a fixed TTL. Quantity and currency are not part of the key, so
one entry serves every cart containing that configuration.

SingleFlight lets concurrent callers asking for the same thing share one
provider call. It is an optimization only: callers must behave correctly
if two identical calls do run.

Thread Safety:
    Both classes guard their state with threading.Lock and are shared by
    all request threads.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

CacheKey = Tuple[str, str]


@dataclass(frozen=True)
class CachedUnitCost:
    amount: Decimal
    currency: str
    expires_at: float


class QuoteCache:
    """
    TTL cache of provider unit costs.

    Usage:
        cache = QuoteCache(ttl_seconds=300)
        cache.put("US", quote_key, Decimal("42.00"), "USD")
        hit = cache.get("US", quote_key)
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CachedUnitCost] = {}
        self._next_sweep = clock() + ttl_seconds
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, destination: str, quote_key: str) -> Optional[CachedUnitCost]:
        """Return the live entry, or None (expired entries are evicted)."""
        key = (destination.upper(), quote_key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    def put(self, destination: str, quote_key: str, amount: Decimal, currency: str) -> None:
        """Store a unit cost; sweeps expired entries at most once per TTL."""
        now = self._clock()
        entry = CachedUnitCost(amount, currency.upper(), now + self.ttl_seconds)
        with self._lock:
            if now >= self._next_sweep:
                self._evict_expired(now)
                self._next_sweep = now + self.ttl_seconds
            self._entries[(destination.upper(), quote_key)] = entry

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired quote(s)")

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} cached quotes")
        return count

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl_seconds,
            }


class _Call:
    def __init__(self):
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


class SingleFlight:
    """
    Collapse concurrent calls with the same key into one execution.

    The first caller runs ``fn``; callers arriving while it runs wait and
    receive the same result, or the same exception re-raised.
    """

    def __init__(self):
        self._calls: Dict[Hashable, _Call] = {}
        self._lock = threading.Lock()

    def do(self, key: Hashable, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = self._calls[key] = _Call()

        if not leader:
            logger.debug(f"Joining in-flight request {key!r}")
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
            return call.result
        except BaseException as e:
            call.error = e
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()

    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)
