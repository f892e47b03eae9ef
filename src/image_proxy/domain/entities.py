"""Domain entities for the Image Proxy Service.

Pure data carriers exchanged between the layers of the proxy. Entities are
frozen dataclasses with no framework dependencies.

Key Entities:
    - ImageOptions: Validated, normalized transformation options
    - FetchedImage: Raw origin bytes with the reported content type
    - PipelineResult: Rendered output of the transform pipeline
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from image_proxy.domain.value_objects import ImageFormat


@dataclass(slots=True, frozen=True)
class ImageOptions:
    """Validated transformation options for one request.

    Instances are produced by the option normalizer and never mutated. The
    ``size`` shorthand has already been expanded into ``width`` and
    ``height`` and has no field here.

    Attributes:
        width: Target width in pixels, or None.
        height: Target height in pixels, or None.
        quality: Encoder quality (1-100), or None for the default.
        format: Output format, or None to keep the source format.
        rounded: Corner rounding percentage (0-100), or None.
        optimize: Whether to run the encoder's optimization pass, or None.
    """

    width: int | None = None
    height: int | None = None
    quality: int | None = None
    format: ImageFormat | None = None
    rounded: int | None = None
    optimize: bool | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the set fields only, keyed by option name."""
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if getattr(self, field.name) is not None
        }

    def is_empty(self) -> bool:
        """Return True when no option is set."""
        return not self.as_dict()

    def canonical(self) -> str:
        """Order-independent serialization used in cache keys.

        Set fields are rendered as ``key=value`` pairs sorted by key and joined
        with ``&``. Booleans render lowercase so the output matches query
        syntax, e.g. ``format=webp&optimize=true&width=100``.
        """
        parts = []
        for key, value in sorted(self.as_dict().items()):
            match value:
                case bool():
                    rendered = "true" if value else "false"
                case ImageFormat():
                    rendered = value.value
                case _:
                    rendered = str(value)
            parts.append(f"{key}={rendered}")
        return "&".join(parts)


@dataclass(slots=True, frozen=True)
class FetchedImage:
    """Raw bytes retrieved from the origin.

    Attributes:
        url: Canonical source URL the bytes were fetched from.
        data: Response body.
        content_type: Content-Type reported by the origin.
    """

    url: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(slots=True, frozen=True)
class PipelineResult:
    """Rendered output of the transform pipeline.

    Attributes:
        data: Encoded image bytes.
        format: Output format the bytes are encoded in.
        width: Output width in pixels.
        height: Output height in pixels.
    """

    data: bytes
    format: ImageFormat
    width: int
    height: int

    @property
    def content_length(self) -> int:
        return len(self.data)

    @property
    def media_type(self) -> str:
        return self.format.media_type

    @property
    def extension(self) -> str:
        return self.format.value


__all__ = ["FetchedImage", "ImageOptions", "PipelineResult"]
