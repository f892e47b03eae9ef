"""TTL cache with in-flight request coalescing.

This module provides the in-memory store behind both cache tiers of the
proxy. Entries expire a fixed time after they were written; concurrent
callers asking for the same missing key share one underlying computation.

Key Features:
    - TTL expiration: An entry is live while ``now - inserted_at <= ttl``
      (write-time expiry, reads do not extend an entry's life)
    - Bounded size: ``TTLCache``'s capacity bound; when full it evicts to
      make room. This is a memory bound only, not the expiry policy
    - Coalescing: At most one computation in flight per key
    - Failure isolation: Failed computations are delivered to every waiter
      and never stored
    - Statistics tracking: Hits, misses and coalesced joins for monitoring

Concurrency:
    All bookkeeping runs on the event loop thread. Checking the store,
    registering an in-flight task and promoting a finished value contain no
    ``await`` between them, so each is atomic per key without a lock. The
    shared computation runs as its own ``asyncio.Task``; waiters attach
    through ``asyncio.shield`` so a cancelled requester never cancels work
    other requesters are waiting on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from enum import StrEnum
from typing import Generic, TypeVar

from cachetools import TTLCache

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_STORE_TTL_MARGIN = 1.0


class CacheOutcome(StrEnum):
    """How a ``get_or_compute`` call was served."""

    HIT = "hit"
    MISS = "miss"
    JOINED = "joined"


class CacheEntry(Generic[V]):
    """Cached value with its insertion time.

    Immutable once created; expiry removes entries, it never edits them.

    Attributes:
        value: Cached value.
        inserted_at: Timer reading when the entry was written.
    """

    __slots__ = ("value", "inserted_at")

    def __init__(self, value: V, inserted_at: float) -> None:
        self.value = value
        self.inserted_at = inserted_at


class CoalescingCache(Generic[K, V]):
    """In-memory TTL cache that deduplicates concurrent misses.

    Attributes:
        name: Label used in logs and statistics.
        max_size: Maximum number of cached entries.
        ttl_seconds: Time-to-live for entries in seconds.
    """

    def __init__(
        self,
        name: str,
        max_size: int = 256,
        ttl_seconds: float = 3600.0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            name: Label used in logs and statistics.
            max_size: Maximum number of cached entries. Must be positive.
            ttl_seconds: Entry time-to-live in seconds. Must be positive.
            timer: Clock used for insertion times and expiry. Tests inject a
                controllable clock here.
        """
        self.name = name
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._timer = timer
        # TTLCache only bounds memory; it drops entries a margin after they
        # are already stale by the inserted_at check below.
        self._cache: TTLCache[K, CacheEntry[V]] = TTLCache(
            maxsize=max_size, ttl=ttl_seconds + _STORE_TTL_MARGIN, timer=timer
        )
        self._in_flight: dict[K, asyncio.Task[V]] = {}
        self._hits = 0
        self._misses = 0
        self._joins = 0

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return self._lookup(key) is not None  # type: ignore[arg-type]

    @property
    def in_flight(self) -> int:
        """Number of computations currently running."""
        return len(self._in_flight)

    def _is_expired(self, entry: CacheEntry[V]) -> bool:
        return self._timer() - entry.inserted_at > self.ttl_seconds

    def _lookup(self, key: K) -> CacheEntry[V] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._cache.pop(key, None)
            return None
        return entry

    def _purge_expired(self) -> None:
        for key in [key for key, entry in self._cache.items() if self._is_expired(entry)]:
            self._cache.pop(key, None)

    def get(self, key: K) -> V | None:
        """Return the live value for ``key`` without touching statistics."""
        entry = self._lookup(key)
        return None if entry is None else entry.value

    def put(self, key: K, value: V) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        self._cache[key] = CacheEntry(value, self._timer())

    async def get_or_compute(
        self,
        key: K,
        compute: Callable[[], Awaitable[V]],
    ) -> tuple[V, CacheOutcome]:
        """Return the cached value for ``key``, computing it at most once.

        A live entry is returned immediately. Otherwise the caller joins the
        computation already running for ``key``, or starts one. On success
        the value is stored before any waiter resumes; on failure the
        exception is raised in every waiter and nothing is stored.

        Args:
            key: Cache key.
            compute: Zero-argument coroutine factory producing the value.
                Called only when no entry and no in-flight task exist.

        Returns:
            Tuple of (value, outcome).
        """
        entry = self._lookup(key)
        if entry is not None:
            self._hits += 1
            logger.debug("[%s] cache hit: %s", self.name, key)
            return entry.value, CacheOutcome.HIT

        task = self._in_flight.get(key)
        if task is not None:
            self._joins += 1
            logger.debug("[%s] joined in-flight computation: %s", self.name, key)
            return await asyncio.shield(task), CacheOutcome.JOINED

        self._misses += 1
        task = asyncio.create_task(self._run(key, compute), name=f"{self.name}:{key}")
        self._in_flight[key] = task
        logger.debug("[%s] cache miss, computing: %s", self.name, key)
        return await asyncio.shield(task), CacheOutcome.MISS

    async def _run(self, key: K, compute: Callable[[], Awaitable[V]]) -> V:
        try:
            value = await compute()
            self.put(key, value)
            return value
        except Exception as exc:
            logger.warning(
                "[%s] computation failed for %s: %s: %s",
                self.name,
                key,
                type(exc).__name__,
                exc,
            )
            raise
        finally:
            self._in_flight.pop(key, None)

    def clear(self) -> None:
        """Remove all entries and reset statistics.

        In-flight computations keep running and still store their values.
        """
        self._cache.clear()
        self._hits = 0
        self._misses = 0
        self._joins = 0

    def get_stats(self) -> dict[str, int | float]:
        """Get cache statistics.

        Returns:
            Dictionary with:
                - size: Current number of cached entries
                - max_size: Maximum cache size
                - hits: Lookups served from the store
                - misses: Lookups that started a computation
                - coalesced: Lookups that joined a running computation
                - in_flight: Computations currently running
                - hit_rate: hits / all lookups (0.0 when idle)
                - ttl_seconds: Entry time-to-live
        """
        total = self._hits + self._misses + self._joins
        return {
            "size": len(self),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "coalesced": self._joins,
            "in_flight": len(self._in_flight),
            "hit_rate": self._hits / total if total > 0 else 0.0,
            "ttl_seconds": self.ttl_seconds,
        }


__all__ = ["CacheEntry", "CacheOutcome", "CoalescingCache"]
