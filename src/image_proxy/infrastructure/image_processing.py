"""Image codec operations backed by Pillow.

This module is the only place that touches pixels. The transform pipeline
treats it as an opaque capability: decode bytes into an ``ImageState``, apply
geometric operations, and encode the state back to bytes.

Key Features:
    - Decoding with forced load to catch truncated streams
    - High-quality resizing (LANCZOS)
    - Rounded-corner alpha masking
    - Encoding to PNG, JPEG or WebP with quality and optimize settings
    - RGBA to RGB flattening for JPEG compatibility

Dependencies:
    - Pillow (PIL): Required for image processing operations
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, replace

from PIL import Image, ImageChops, ImageDraw, ImageOps

from image_proxy.domain.entities import PipelineResult
from image_proxy.domain.exceptions import ProcessingError
from image_proxy.domain.value_objects import DEFAULT_QUALITY, ImageFormat

logger = logging.getLogger(__name__)

_PNG_MODES = frozenset({"1", "L", "LA", "P", "RGB", "RGBA"})


@dataclass(slots=True, frozen=True)
class ImageState:
    """Image being transformed plus the encoder settings chosen so far.

    Stages never mutate a state; they return a new one via ``evolve``.

    Attributes:
        image: Decoded Pillow image.
        source_format: Format the origin bytes were decoded from, if supported
            as an output format.
        output_format: Requested output format, or None to keep the source.
        quality: Requested encoder quality, or None for the default.
        optimize: Whether the encoder's optimization pass is enabled.
    """

    image: Image.Image
    source_format: ImageFormat | None = None
    output_format: ImageFormat | None = None
    quality: int | None = None
    optimize: bool = False

    @property
    def width(self) -> int:
        return self.metadata("width")

    @property
    def height(self) -> int:
        return self.metadata("height")

    def metadata(self, attribute: str) -> int:
        """Return an intrinsic integer attribute of the current image.

        Raises:
            ProcessingError: If the attribute is unavailable, naming it.
        """
        value = getattr(self.image, attribute, None)
        if not isinstance(value, int) or value <= 0:
            raise ProcessingError(
                f"Could not determine image {attribute}", attribute=attribute
            )
        return value

    def evolve(self, **changes: object) -> ImageState:
        return replace(self, **changes)


def decode_image(data: bytes) -> ImageState:
    """Decode raw bytes into an ImageState.

    Raises:
        ProcessingError: If the bytes are not a readable image.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Exception as exc:
        raise ProcessingError(f"Invalid image data: {exc}") from exc

    return ImageState(image=img, source_format=ImageFormat.from_pillow(img.format))


def resize_image(
    state: ImageState, width: int, height: int, *, cover: bool = False
) -> ImageState:
    """Resize to exactly ``width`` x ``height``.

    With ``cover`` the aspect ratio is kept and the overflow is cropped
    around the center instead of stretching the image.
    """
    if (width, height) == state.image.size:
        return state
    if cover:
        resized = ImageOps.fit(state.image, (width, height), Image.Resampling.LANCZOS)
    else:
        resized = state.image.resize((width, height), Image.Resampling.LANCZOS)
    logger.debug(
        "Resized image from %dx%d to %dx%d", state.width, state.height, width, height
    )
    return state.evolve(image=resized)


def round_corners(state: ImageState, radius: float) -> ImageState:
    """Mask the image corners with the given radius (pixels).

    The mask is combined with any existing alpha channel, so transparent
    regions of the source stay transparent.
    """
    img = state.image.convert("RGBA")
    mask = Image.new("L", img.size, 0)
    ImageDraw.Draw(mask).rounded_rectangle(
        (0, 0, img.width - 1, img.height - 1),
        radius=int(round(radius)),
        fill=255,
    )
    img.putalpha(ImageChops.multiply(img.getchannel("A"), mask))
    return state.evolve(image=img)


def _prepare_mode(img: Image.Image, target: ImageFormat) -> Image.Image:
    has_alpha = "A" in img.getbands() or "transparency" in img.info

    match (target, img.mode):
        case (ImageFormat.JPEG, "RGB"):
            return img
        case (ImageFormat.JPEG, _) if has_alpha:
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        case (ImageFormat.JPEG, _):
            return img.convert("RGB")
        case (ImageFormat.PNG, mode) if mode in _PNG_MODES:
            return img
        case (_, "RGB" | "RGBA"):
            return img
        case _:
            return img.convert("RGBA" if has_alpha else "RGB")


def encode_image(
    state: ImageState,
    *,
    default_quality: int = DEFAULT_QUALITY,
    fallback_format: ImageFormat = ImageFormat.WEBP,
) -> PipelineResult:
    """Encode the state into its output format.

    The output format is the requested one, else the source format, else
    ``fallback_format``. Quality defaults to ``default_quality``.

    Raises:
        ProcessingError: If the encoder fails.
    """
    target = state.output_format or state.source_format or fallback_format
    quality = state.quality or default_quality
    img = _prepare_mode(state.image, target)

    output = io.BytesIO()
    try:
        match target:
            case ImageFormat.JPEG:
                img.save(output, format="JPEG", quality=quality, optimize=state.optimize)
            case ImageFormat.WEBP:
                img.save(
                    output,
                    format="WEBP",
                    quality=quality,
                    method=6 if state.optimize else 4,
                )
            case ImageFormat.PNG:
                img.save(output, format="PNG", optimize=state.optimize)
    except Exception as exc:
        raise ProcessingError(f"Failed to encode image as {target}: {exc}") from exc

    return PipelineResult(
        data=output.getvalue(),
        format=target,
        width=img.width,
        height=img.height,
    )


__all__ = [
    "ImageState",
    "decode_image",
    "encode_image",
    "resize_image",
    "round_corners",
]
