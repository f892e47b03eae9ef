"""System routes: usage page, health check and cache statistics.

Endpoints:
    GET /
        - Response: HTML usage page listing the supported options
    GET /health
        - Response: HealthResponse
        - Rate Limited: No (health checks should be fast)
    GET /stats
        - Response: CacheStatsResponse (origin and result cache tiers)

These routes are registered before the proxy catch-all route so they are
never interpreted as source URLs.
"""

from __future__ import annotations

import functools
import html
import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from image_proxy.api.dependencies import get_origin_cache, get_result_cache
from image_proxy.api.models import CacheStatsResponse, CacheTierStats, HealthResponse
from image_proxy.application.options import describe_options
from image_proxy.infrastructure.config import settings
from image_proxy.infrastructure.image_cache import OriginCache, ResultCache

logger = logging.getLogger(__name__)

router = APIRouter()

_STARTED_AT = time.monotonic()

_EXAMPLE_PATH = "/https%3A%2F%2Fexample.com%2Fcat.png?width=400&format=webp&rounded=20"

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        body {{ font-family: system-ui, sans-serif; line-height: 1.6; max-width: 800px;
               margin: 0 auto; padding: 2rem; color: #e2e8f0; background: #1a1a1a; }}
        h1 {{ color: #a855f7; }}
        h2 {{ color: #c084fc; margin-top: 2rem; }}
        code {{ background: #2a2a2a; padding: 0.2rem 0.4rem; border-radius: 4px; }}
        .example {{ background: #2a2a2a; padding: 1rem; border-radius: 8px; overflow-x: auto; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <p>Fetch a remote image, transform it on the fly and cache the result.</p>

    <h2>Usage</h2>
    <p>Percent-encode the source URL and pass it as the path, with the
    transformations as query parameters:</p>
    <div class="example"><code>GET {example}</code></div>

    <h2>Options</h2>
    <ul>
{options}
    </ul>

    <h2>Processing order</h2>
    <p>Resize, then rounded corners, then format and quality. Only the steps
    whose options are present run; at least one option is required.</p>
</body>
</html>
"""


@functools.cache
def render_usage_page() -> str:
    """Render the usage page from the option schema descriptions."""
    options = "\n".join(
        f"        <li><code>{html.escape(name)}</code>: {html.escape(description)}</li>"
        for name, description in describe_options()
    )
    return _PAGE_TEMPLATE.format(
        title=html.escape(settings.api.title),
        example=html.escape(_EXAMPLE_PATH),
        options=options,
    )


@router.get("/", response_class=HTMLResponse, tags=["Root"])
async def usage_page() -> HTMLResponse:
    """Human-readable usage documentation."""
    return HTMLResponse(render_usage_page())


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Liveness check. Does not contact any origin."""
    return HealthResponse(
        status="healthy",
        version=settings.api.version,
        uptime_seconds=round(time.monotonic() - _STARTED_AT, 3),
    )


@router.get("/stats", response_model=CacheStatsResponse, tags=["Cache"])
async def cache_stats(
    origin_cache: OriginCache = Depends(get_origin_cache),  # noqa: B008
    result_cache: ResultCache = Depends(get_result_cache),  # noqa: B008
) -> CacheStatsResponse:
    """Statistics of both cache tiers."""
    return CacheStatsResponse(
        origin_cache=CacheTierStats.model_validate(origin_cache.get_stats()),
        result_cache=CacheTierStats.model_validate(result_cache.get_stats()),
    )


__all__ = ["render_usage_page", "router"]
