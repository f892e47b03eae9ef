"""Use case for proxying and transforming one image.

``ProxyImageUseCase`` is the orchestrator of the service. It is framework
agnostic: routes hand it the raw source path and query parameters and turn
its ``ProxyResult`` (or its domain exception) into an HTTP response.

Request Flow:
    1. Parse options: raw query -> ImageOptions (ValidationError)
    2. Validate URL: absolute http(s) only (InvalidUrlError)
    3. Capability check: empty options (NoOptionsProvidedError), then no
       applicable stage (NoApplicableOptionsError). Nothing touches the
       network before this point.
    4. Result cache lookup keyed by (canonical URL, canonical options)
    5. On miss: origin cache lookup-or-fetch (keyed by the canonical URL,
       requesting the URL as given minus option parameters), then the
       transform pipeline in a worker thread, then the result is stored
    6. Respond with the rendered bytes and a download filename

Failures in step 5 propagate to every coalesced waiter and are never
cached. Anything that is not an ImageProxyError is wrapped in InternalError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from image_proxy.application.options import normalize_options
from image_proxy.core.urls import (
    canonicalize_source_url,
    decode_source_path,
    derive_filename,
    is_valid_http_url,
    origin_fetch_url,
)
from image_proxy.core.utils import format_duration
from image_proxy.domain.exceptions import (
    ImageProxyError,
    InternalError,
    InvalidUrlError,
    NoOptionsProvidedError,
)
from image_proxy.domain.value_objects import ResultKey

if TYPE_CHECKING:
    from image_proxy.application.interfaces import (
        OriginCacheInterface,
        ResultCacheInterface,
        TransformPipelineInterface,
    )
    from image_proxy.domain.entities import ImageOptions, PipelineResult
    from image_proxy.infrastructure.coalescing_cache import CacheOutcome

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ProxyResult:
    """Outcome of a successful proxy request.

    Attributes:
        result: Rendered image.
        filename: Download name including the output extension.
        source_url: URL the image was fetched from.
        options: Normalized options that were applied.
        cache: How the result cache served the request.
        latency_ms: Time spent in the use case.
    """

    result: PipelineResult
    filename: str
    source_url: str
    options: ImageOptions
    cache: CacheOutcome
    latency_ms: float


class ProxyImageUseCase:
    """Fetch, transform and cache one source image.

    Attributes:
        _origin_cache: Coalescing cache of raw origin images.
        _result_cache: Coalescing cache of rendered results.
        _pipeline: Transform pipeline (stage selection and rendering).
    """

    def __init__(
        self,
        origin_cache: OriginCacheInterface,
        result_cache: ResultCacheInterface,
        pipeline: TransformPipelineInterface,
    ) -> None:
        self._origin_cache = origin_cache
        self._result_cache = result_cache
        self._pipeline = pipeline

    def prepare(
        self, raw_url: str, query: Mapping[str, str]
    ) -> tuple[str, str, ImageOptions]:
        """Run every check that needs no network access.

        Returns:
            Tuple of (origin fetch URL, canonical cache key URL, normalized
            options). The fetch URL keeps the caller's query order and
            encoding; only the cache key is normalized.

        Raises:
            ValidationError: Options fail the schema.
            InvalidUrlError: Source is not an absolute http(s) URL.
            NoOptionsProvidedError: No option was given.
            NoApplicableOptionsError: No stage applies to the options.
        """
        options = normalize_options(query)

        url = decode_source_path(raw_url)
        if not is_valid_http_url(url):
            raise InvalidUrlError(url)

        if options.is_empty():
            raise NoOptionsProvidedError()
        self._pipeline.select_stages(options)

        return origin_fetch_url(url), canonicalize_source_url(url), options

    async def execute(self, raw_url: str, query: Mapping[str, str]) -> ProxyResult:
        """Serve one proxy request.

        Args:
            raw_url: Source URL as captured from the request path.
            query: Raw query parameters.

        Returns:
            ProxyResult with the rendered image.

        Raises:
            ImageProxyError: Any subclass, from validation through processing.
                Unexpected failures while rendering surface as InternalError.
        """
        start = time.perf_counter()
        fetch_url, cache_url, options = self.prepare(raw_url, query)
        key = ResultKey(source_url=cache_url, options=options.canonical())

        async def render() -> PipelineResult:
            try:
                image = await self._origin_cache.get_or_fetch(cache_url, fetch_url)
                return await asyncio.to_thread(self._pipeline.run, image.data, options)
            except ImageProxyError:
                raise
            except Exception as exc:
                raise InternalError(f"Unexpected {type(exc).__name__} while rendering") from exc

        result, outcome = await self._result_cache.get_or_compute(key, render)
        latency_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "Served %s (%s, %dx%d %s) in %s",
            key,
            outcome,
            result.width,
            result.height,
            result.format,
            format_duration(latency_ms),
        )
        return ProxyResult(
            result=result,
            filename=f"{derive_filename(fetch_url)}.{result.extension}",
            source_url=fetch_url,
            options=options,
            cache=outcome,
            latency_ms=latency_ms,
        )


__all__ = ["ProxyImageUseCase", "ProxyResult"]
