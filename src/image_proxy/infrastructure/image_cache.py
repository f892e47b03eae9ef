"""Two-tier image caches.

- ``OriginCache`` holds raw origin bytes keyed by canonical source URL.
- ``ResultCache`` holds transformed output keyed by ``ResultKey``
  (canonical source URL plus canonical option serialization).

Both tiers share the ``CoalescingCache`` discipline: live entries are served
without further work, concurrent misses share one computation, failures are
never cached, and entries expire a fixed TTL after they were written.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from image_proxy.domain.exceptions import ImageTooLargeError
from image_proxy.domain.value_objects import MAX_IMAGE_BYTES
from image_proxy.infrastructure.coalescing_cache import CacheOutcome, CoalescingCache

if TYPE_CHECKING:
    from image_proxy.application.interfaces import OriginFetcherInterface
    from image_proxy.domain.entities import FetchedImage, PipelineResult
    from image_proxy.domain.value_objects import ResultKey

logger = logging.getLogger(__name__)


class OriginCache:
    """Coalescing TTL cache of fetched origin images.

    Guarantees at most one origin fetch in flight per URL. Bodies above
    ``max_image_bytes`` are rejected before they can be stored, whichever
    fetcher produced them.
    """

    def __init__(
        self,
        fetcher: OriginFetcherInterface,
        max_size: int = 256,
        ttl_seconds: float = 3600.0,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self.max_image_bytes = max_image_bytes
        self._cache: CoalescingCache[str, FetchedImage] = CoalescingCache(
            "origin", max_size=max_size, ttl_seconds=ttl_seconds, timer=timer
        )

    async def get_or_fetch(self, key: str, url: str | None = None) -> FetchedImage:
        """Return the cached image for ``key``, fetching it at most once.

        Args:
            key: Canonical source URL the image is cached under.
            url: URL actually requested from the origin. Defaults to ``key``.

        Raises:
            FetchError: Propagated from the fetcher to every joined waiter.
            ImageTooLargeError: If the fetched body exceeds the size bound.
        """
        fetch_url = url or key

        async def _fetch() -> FetchedImage:
            image = await self._fetcher.fetch(fetch_url)
            if image.size > self.max_image_bytes:
                raise ImageTooLargeError(fetch_url, self.max_image_bytes, image.size)
            return image

        image, outcome = await self._cache.get_or_compute(key, _fetch)
        if outcome is not CacheOutcome.MISS:
            logger.debug("Origin %s for %s", outcome, key)
        return image

    def clear(self) -> None:
        self._cache.clear()

    def get_stats(self) -> dict[str, int | float]:
        return self._cache.get_stats()


class ResultCache:
    """Coalescing TTL cache of transformed images.

    A hit skips both the origin fetch and the transform pipeline; concurrent
    misses for the same key run the pipeline once.
    """

    def __init__(
        self,
        max_size: int = 256,
        ttl_seconds: float = 3600.0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: CoalescingCache[ResultKey, PipelineResult] = CoalescingCache(
            "result", max_size=max_size, ttl_seconds=ttl_seconds, timer=timer
        )

    async def get_or_compute(
        self,
        key: ResultKey,
        compute: Callable[[], Awaitable[PipelineResult]],
    ) -> tuple[PipelineResult, CacheOutcome]:
        """Return the cached result for ``key`` or compute it once."""
        return await self._cache.get_or_compute(key, compute)

    def get(self, key: ResultKey) -> PipelineResult | None:
        return self._cache.get(key)

    def clear(self) -> None:
        self._cache.clear()

    def get_stats(self) -> dict[str, int | float]:
        return self._cache.get_stats()


__all__ = ["OriginCache", "ResultCache"]
