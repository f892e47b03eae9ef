"""Application lifespan management.

Lifespan Responsibilities:
    - Startup:
        1. Create the origin fetcher (shared httpx client)
        2. Create the origin and result caches
        3. Create the transform pipeline and the proxy use case
        4. Register them for dependency injection
    - Shutdown:
        1. Unregister the dependencies
        2. Close the origin fetcher's HTTP client
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from image_proxy.api.dependencies import set_dependencies
from image_proxy.application.use_cases import ProxyImageUseCase
from image_proxy.core.utils import format_bytes
from image_proxy.infrastructure.config import settings
from image_proxy.infrastructure.image_cache import OriginCache, ResultCache
from image_proxy.infrastructure.origin_fetcher import OriginFetcher
from image_proxy.infrastructure.pipeline import TransformPipeline

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan_context(app: FastAPI) -> AsyncIterator[None]:
    """Build the proxy's components on startup and release them on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None. Control is yielded to the application for request handling.
    """
    logger.info("LIFESPAN: Starting %s %s", settings.api.title, settings.api.version)

    fetcher = OriginFetcher.from_config(settings.fetch)
    origin_cache = OriginCache(
        fetcher,
        max_size=settings.origin_cache.max_size,
        ttl_seconds=settings.origin_cache.ttl_seconds,
        max_image_bytes=settings.fetch.max_image_bytes,
    )
    result_cache = ResultCache(
        max_size=settings.result_cache.max_size,
        ttl_seconds=settings.result_cache.ttl_seconds,
    )
    pipeline = TransformPipeline(
        default_quality=settings.transform.default_quality,
        fallback_format=settings.transform.fallback_format,
    )
    set_dependencies(
        origin_cache,
        result_cache,
        ProxyImageUseCase(origin_cache, result_cache, pipeline),
    )
    logger.info(
        "LIFESPAN: Caches ready (origin: %d entries / %ss, result: %d entries / %ss), "
        "max image size %s",
        settings.origin_cache.max_size,
        settings.origin_cache.ttl_seconds,
        settings.result_cache.max_size,
        settings.result_cache.ttl_seconds,
        format_bytes(settings.fetch.max_image_bytes),
    )

    try:
        yield
    finally:
        logger.info("LIFESPAN: Shutting down")
        set_dependencies(None, None, None)
        await fetcher.aclose()
