"""Interfaces (Protocols) for the application layer.

The application layer depends on these protocols rather than on concrete
infrastructure, so tests can substitute lightweight fakes.

Interfaces:
    - OriginFetcherInterface: Retrieves raw image bytes from a source URL
    - OriginCacheInterface: Lookup-or-fetch over the origin tier
    - ResultCacheInterface: Lookup-or-compute over the processed-result tier
    - TransformPipelineInterface: Stage selection and rendering of one image
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from image_proxy.domain.entities import FetchedImage, ImageOptions, PipelineResult
    from image_proxy.domain.value_objects import ResultKey
    from image_proxy.infrastructure.coalescing_cache import CacheOutcome


class OriginFetcherInterface(Protocol):
    """Protocol for origin image retrieval."""

    async def fetch(self, url: str) -> FetchedImage:
        """Fetch the raw bytes at ``url``.

        Raises:
            FetchError: If the origin is unreachable, answers with a non-2xx
                status or non-image content, or the body is too large.
        """
        ...


class OriginCacheInterface(Protocol):
    """Protocol for the origin cache tier."""

    async def get_or_fetch(self, key: str, url: str | None = None) -> FetchedImage:
        """Return cached bytes for ``key`` or fetch ``url`` (deduplicated)."""
        ...

    def get_stats(self) -> dict[str, Any]:
        ...


class ResultCacheInterface(Protocol):
    """Protocol for the processed-result cache tier."""

    async def get_or_compute(
        self,
        key: ResultKey,
        compute: Callable[[], Awaitable[PipelineResult]],
    ) -> tuple[PipelineResult, CacheOutcome]:
        """Return the cached result for ``key`` or compute it (deduplicated)."""
        ...

    def get_stats(self) -> dict[str, Any]:
        ...


class TransformPipelineInterface(Protocol):
    """Protocol for the image transform pipeline."""

    def select_stages(self, options: ImageOptions) -> tuple[Any, ...]:
        """Return the applicable stages.

        Raises:
            NoApplicableOptionsError: If no stage applies to ``options``.
        """
        ...

    def run(self, data: bytes, options: ImageOptions) -> PipelineResult:
        """Transform raw image bytes. Synchronous and CPU-bound.

        Raises:
            ProcessingError: If the image cannot be decoded or rendered.
        """
        ...


__all__ = [
    "OriginCacheInterface",
    "OriginFetcherInterface",
    "ResultCacheInterface",
    "TransformPipelineInterface",
]
