"""Reusable test utilities and helpers for Image Proxy Service tests.

This module provides common patterns used across test files: in-memory
images, a controllable clock, a scripted origin server behind
``httpx.MockTransport``, and FastAPI dependency override helpers.
"""

from __future__ import annotations

import asyncio
import io
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
from fastapi import FastAPI
from PIL import Image

from image_proxy.api.dependencies import (
    get_origin_cache,
    get_proxy_use_case,
    get_result_cache,
)
from image_proxy.application.use_cases import ProxyImageUseCase
from image_proxy.domain.entities import ImageOptions, PipelineResult
from image_proxy.infrastructure.image_cache import OriginCache, ResultCache
from image_proxy.infrastructure.origin_fetcher import OriginFetcher
from image_proxy.infrastructure.pipeline import TransformPipeline

SOURCE_URL = "https://example.com/cat.png"


def make_image_bytes(
    width: int,
    height: int,
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 80, 40),
) -> bytes:
    """Encode a solid-color image of the given size.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        fmt: Pillow format name ("PNG", "JPEG", "WEBP", "GIF", ...).
        mode: Pillow mode of the generated image.
        color: Fill color matching ``mode``.

    Returns:
        Encoded image bytes.
    """
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes for assertions."""
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class FakeTimer:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def _chunks(data: bytes, size: int = 1024 * 1024) -> AsyncIterator[bytes]:
    for start in range(0, len(data), size):
        yield data[start : start + size]


@dataclass
class OriginRoute:
    """Scripted answer for one origin URL."""

    status_code: int = 200
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=lambda: {"content-type": "image/png"})
    chunked: bool = False


class OriginStub:
    """Scripted origin server behind ``httpx.MockTransport``.

    Records every request so tests can assert how often the origin was hit.

    Attributes:
        routes: Answers keyed by full URL.
        requests: URLs requested, in order.
        delay: Seconds each response is held back (lets concurrent requests
            pile up behind the first one).
        failures: Number of upcoming requests that raise ConnectError.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.routes: dict[str, OriginRoute] = {}
        self.requests: list[str] = []
        self.delay = delay
        self.failures = 0

    def add(
        self,
        url: str,
        content: bytes,
        status_code: int = 200,
        content_type: str | None = "image/png",
        headers: dict[str, str] | None = None,
        chunked: bool = False,
    ) -> None:
        route_headers = dict(headers or {})
        if content_type is not None:
            route_headers["content-type"] = content_type
        self.routes[url] = OriginRoute(status_code, content, route_headers, chunked)

    def count(self, url: str) -> int:
        return self.requests.count(url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise httpx.ConnectError("connection refused", request=request)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, content=b"not found", headers={"content-type": "text/plain"})
        if route.chunked:
            return httpx.Response(
                route.status_code, content=_chunks(route.content), headers=route.headers
            )
        return httpx.Response(route.status_code, content=route.content, headers=route.headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def fetcher(
        self,
        max_image_bytes: int = 10 * 1024 * 1024,
        max_retries: int = 1,
        timeout_seconds: float = 30.0,
    ) -> OriginFetcher:
        client = httpx.AsyncClient(transport=self.transport)
        return OriginFetcher(
            client,
            max_image_bytes=max_image_bytes,
            max_retries=max_retries,
            retry_delay=0.0,
            timeout_seconds=timeout_seconds,
        )


class CountingPipeline(TransformPipeline):
    """TransformPipeline that counts how often it renders."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.runs = 0

    def run(self, data: bytes, options: ImageOptions) -> PipelineResult:
        self.runs += 1
        return super().run(data, options)


@dataclass
class ProxyHarness:
    """Use case wired to an OriginStub, with its collaborators exposed."""

    origin: OriginStub
    origin_cache: OriginCache
    result_cache: ResultCache
    pipeline: CountingPipeline
    use_case: ProxyImageUseCase
    timer: FakeTimer


def build_harness(
    origin: OriginStub | None = None,
    ttl_seconds: float = 3600.0,
    max_image_bytes: int = 10 * 1024 * 1024,
) -> ProxyHarness:
    """Build a proxy use case over fresh caches and a scripted origin."""
    origin = origin or OriginStub()
    timer = FakeTimer()
    origin_cache = OriginCache(
        origin.fetcher(max_image_bytes=max_image_bytes),
        ttl_seconds=ttl_seconds,
        max_image_bytes=max_image_bytes,
        timer=timer,
    )
    result_cache = ResultCache(ttl_seconds=ttl_seconds, timer=timer)
    pipeline = CountingPipeline()
    use_case = ProxyImageUseCase(origin_cache, result_cache, pipeline)
    return ProxyHarness(origin, origin_cache, result_cache, pipeline, use_case, timer)


def setup_dependency_overrides(app: FastAPI, harness: ProxyHarness) -> None:
    """Point the app's dependencies at a test harness.

    Args:
        app: FastAPI application instance.
        harness: Harness whose caches and use case should serve requests.
    """
    app.dependency_overrides[get_origin_cache] = lambda: harness.origin_cache
    app.dependency_overrides[get_result_cache] = lambda: harness.result_cache
    app.dependency_overrides[get_proxy_use_case] = lambda: harness.use_case


def cleanup_dependency_overrides(app: FastAPI) -> None:
    """Clean up FastAPI dependency overrides after testing."""
    app.dependency_overrides.clear()


def assert_error_response(
    response: httpx.Response,
    expected_status: int,
) -> dict[str, Any]:
    """Assert the response is an ErrorResponse with the expected status.

    Returns:
        Parsed JSON response data.
    """
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )
    assert response.headers.get("content-type", "").startswith("application/json")
    data = response.json()
    assert set(data) == {"statusCode", "message", "timestamp"}
    assert data["statusCode"] == expected_status
    return data
