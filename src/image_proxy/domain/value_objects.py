"""Value objects for the Image Proxy Service.

This module defines immutable value objects for primitive domain concepts:
supported output formats, option bounds, and the composite key of the
processed-result cache.

Design Principles:
    - Immutability: All value objects are frozen dataclasses (slots=True)
    - No identity: Value objects are compared by value, not reference
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

DIMENSION_MIN = 1
DIMENSION_MAX = 10_000
"""Inclusive bounds for width, height and size."""

QUALITY_MIN = 1
QUALITY_MAX = 100

ROUNDED_MIN = 0
ROUNDED_MAX = 100

DEFAULT_QUALITY = 80
"""Encoder quality used when the request does not specify one."""

MAX_IMAGE_BYTES = 10 * 1024 * 1024
"""Largest origin body accepted (10 MiB)."""

OPTION_PARAMETERS = frozenset(
    {"width", "height", "size", "quality", "format", "rounded", "optimize"}
)
"""Query parameter names consumed by the proxy itself."""


class ImageFormat(StrEnum):
    """Supported output image formats.

    Attributes:
        PNG: Lossless, supports transparency.
        JPEG: Lossy, no transparency (alpha is flattened onto white).
        WEBP: Lossy or lossless, supports transparency.
    """

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def media_type(self) -> str:
        """MIME type reported for this format."""
        return f"image/{self.value}"

    @classmethod
    def from_pillow(cls, pillow_format: str | None) -> ImageFormat | None:
        """Map a Pillow format name (e.g. ``"JPEG"``) to an ImageFormat."""
        if not pillow_format:
            return None
        try:
            return cls(pillow_format.lower())
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class ResultKey:
    """Key of the processed-result cache.

    Attributes:
        source_url: Canonical source URL (see ``core.urls.canonicalize_source_url``).
        options: Canonical, order-independent option serialization.
    """

    source_url: str
    options: str

    def __str__(self) -> str:
        return f"{self.source_url}#{self.options}"


__all__ = [
    "DEFAULT_QUALITY",
    "DIMENSION_MAX",
    "DIMENSION_MIN",
    "ImageFormat",
    "MAX_IMAGE_BYTES",
    "OPTION_PARAMETERS",
    "QUALITY_MAX",
    "QUALITY_MIN",
    "ROUNDED_MAX",
    "ROUNDED_MIN",
    "ResultKey",
]
