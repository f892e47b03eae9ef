"""HTTP retrieval of origin images.

Fetches source images with httpx, streaming the body so oversized images are
rejected as soon as they cross the size bound instead of being buffered in
full. Transient transport failures are retried with exponential backoff
(powered by tenacity); HTTP error statuses are not retried.

Failure Mapping:
    - Non-2xx status -> FetchError (upstream_status set)
    - Content-Type not image/* -> InvalidImageContentError
    - Declared or streamed size above the bound -> ImageTooLargeError
    - Connection/timeout errors after retries -> FetchError
    - Whole fetch, retries included, over ``timeout_seconds`` -> FetchError
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from image_proxy.core.utils import format_bytes, format_duration
from image_proxy.domain.entities import FetchedImage
from image_proxy.domain.exceptions import (
    FetchError,
    ImageTooLargeError,
    InvalidImageContentError,
)
from image_proxy.domain.value_objects import MAX_IMAGE_BYTES
from image_proxy.infrastructure.config import FetchConfig

logger = logging.getLogger(__name__)


class OriginFetcher:
    """Streams origin images through a shared ``httpx.AsyncClient``.

    Attributes:
        max_image_bytes: Largest body accepted, in bytes.
        max_retries: Attempts made for transient transport errors.
        retry_delay: Initial backoff delay in seconds.
        timeout_seconds: Budget for the whole fetch, retries and backoff
            included. The client timeout only bounds each phase.
    """

    __slots__ = ("_client", "max_image_bytes", "max_retries", "retry_delay", "timeout_seconds")

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        max_retries: int = 2,
        retry_delay: float = 0.2,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = client
        self.max_image_bytes = max_image_bytes
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(
        cls,
        config: FetchConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OriginFetcher:
        """Build a fetcher (and its HTTP client) from configuration.

        Args:
            config: Fetch configuration section.
            transport: Optional transport override (tests pass
                ``httpx.MockTransport``).
        """
        client = httpx.AsyncClient(
            timeout=config.timeout_seconds,
            follow_redirects=config.follow_redirects,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "image/*,*/*;q=0.8",
            },
            transport=transport,
        )
        return cls(
            client,
            max_image_bytes=config.max_image_bytes,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            timeout_seconds=config.timeout_seconds,
        )

    async def fetch(self, url: str) -> FetchedImage:
        """Fetch the image at ``url``.

        Raises:
            FetchError: Origin unreachable, non-2xx status, or the fetch took
                longer than ``timeout_seconds``.
            InvalidImageContentError: Non-image content type.
            ImageTooLargeError: Body exceeds ``max_image_bytes``.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_delay, max=5.0),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        start = time.perf_counter()
        logger.info("Fetching image from %s...", url)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                image = await retrying(self._fetch_once, url)
        except TimeoutError as exc:
            logger.warning(
                "Origin fetch timed out: url=%s, timeout=%ss", url, self.timeout_seconds
            )
            raise FetchError("Failed to fetch image: timed out", url) from exc
        except httpx.TransportError as exc:
            logger.warning("Origin unreachable: url=%s, error=%s", url, exc)
            raise FetchError(f"Failed to fetch image: {type(exc).__name__}", url) from exc

        logger.info(
            "Image from %s fetched successfully, size: %s (%s)",
            url,
            format_bytes(image.size),
            format_duration((time.perf_counter() - start) * 1000),
        )
        return image

    async def _fetch_once(self, url: str) -> FetchedImage:
        async with self._client.stream("GET", url) as response:
            if not response.is_success:
                raise FetchError(
                    f"Failed to fetch image (origin returned {response.status_code})",
                    url,
                    upstream_status=response.status_code,
                )

            content_type = response.headers.get("content-type", "")
            media_type = content_type.split(";", 1)[0].strip().lower()
            if not media_type.startswith("image/"):
                raise InvalidImageContentError(url, content_type or None)

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > self.max_image_bytes:
                raise ImageTooLargeError(url, self.max_image_bytes, int(declared))

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > self.max_image_bytes:
                    raise ImageTooLargeError(url, self.max_image_bytes, len(buffer))

        return FetchedImage(url=url, data=bytes(buffer), content_type=media_type)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


__all__ = ["OriginFetcher"]
