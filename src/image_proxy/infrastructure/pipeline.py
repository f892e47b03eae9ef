"""Transform pipeline: ordered, capability-gated image stages.

Stages run in a fixed order (resize, rounded corners, format/quality). Each
stage declares whether the request's options concern it; only those stages
run, each receiving the state produced by the previous one. Encoding into the
final bytes always happens once, after the last stage.

The pipeline is synchronous and CPU-bound; callers on the event loop run it
in a worker thread.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Protocol

from image_proxy.core.utils import format_duration
from image_proxy.domain.entities import ImageOptions, PipelineResult
from image_proxy.domain.exceptions import NoApplicableOptionsError
from image_proxy.domain.value_objects import DEFAULT_QUALITY, ImageFormat
from image_proxy.infrastructure.image_processing import (
    ImageState,
    decode_image,
    encode_image,
    resize_image,
    round_corners,
)

logger = logging.getLogger(__name__)


class TransformStage(Protocol):
    """One step of the pipeline."""

    name: str

    def applies_to(self, options: ImageOptions) -> bool:
        ...

    def apply(self, options: ImageOptions, state: ImageState) -> ImageState:
        ...


def _round_half_up(value: float) -> int:
    return max(1, math.floor(value + 0.5))


def resolve_dimensions(
    width: int | None,
    height: int | None,
    source_width: int,
    source_height: int,
) -> tuple[int, int]:
    """Target size for a resize, preserving aspect ratio when one side is missing.

    Example:
        >>> resolve_dimensions(400, None, 800, 600)
        (400, 300)
    """
    if width is not None and height is not None:
        return width, height
    if width is not None:
        return width, _round_half_up(source_height * width / source_width)
    if height is not None:
        return _round_half_up(source_width * height / source_height), height
    return source_width, source_height


def corner_radius(rounded: int, width: int, height: int) -> float:
    """Corner radius in pixels: ``rounded`` percent of half the shorter side."""
    return (rounded / 100) * (min(width, height) / 2)


class ResizeStage:
    name = "resize"

    def applies_to(self, options: ImageOptions) -> bool:
        return options.width is not None or options.height is not None

    def apply(self, options: ImageOptions, state: ImageState) -> ImageState:
        width, height = resolve_dimensions(
            options.width, options.height, state.width, state.height
        )
        both = options.width is not None and options.height is not None
        return resize_image(state, width, height, cover=both)


class RoundedStage:
    name = "rounded"

    def applies_to(self, options: ImageOptions) -> bool:
        return bool(options.rounded)

    def apply(self, options: ImageOptions, state: ImageState) -> ImageState:
        width = options.width or state.metadata("width")
        height = options.height or state.metadata("height")
        radius = corner_radius(options.rounded or 0, width, height)
        return round_corners(state, radius)


class FormatStage:
    name = "format"

    def applies_to(self, options: ImageOptions) -> bool:
        return (
            options.format is not None
            or options.quality is not None
            or options.optimize is not None
        )

    def apply(self, options: ImageOptions, state: ImageState) -> ImageState:
        return state.evolve(
            output_format=options.format,
            quality=options.quality,
            optimize=bool(options.optimize),
        )


STAGES: tuple[TransformStage, ...] = (ResizeStage(), RoundedStage(), FormatStage())


def select_stages(options: ImageOptions) -> tuple[TransformStage, ...]:
    """Return the stages whose options are set, in pipeline order.

    Raises:
        NoApplicableOptionsError: If no stage applies.
    """
    selected = tuple(stage for stage in STAGES if stage.applies_to(options))
    if not selected:
        raise NoApplicableOptionsError()
    return selected


class TransformPipeline:
    """Runs the selected stages over raw image bytes.

    Attributes:
        default_quality: Encoder quality when the request sets none.
        fallback_format: Output format when the source is not png/jpeg/webp.
    """

    def __init__(
        self,
        default_quality: int = DEFAULT_QUALITY,
        fallback_format: ImageFormat = ImageFormat.WEBP,
    ) -> None:
        self.default_quality = default_quality
        self.fallback_format = fallback_format

    def select_stages(self, options: ImageOptions) -> tuple[TransformStage, ...]:
        return select_stages(options)

    def run(self, data: bytes, options: ImageOptions) -> PipelineResult:
        """Decode ``data``, apply every applicable stage, then encode.

        Raises:
            NoApplicableOptionsError: If no stage applies.
            ProcessingError: If decoding, a stage or encoding fails.
        """
        stages = select_stages(options)
        start = time.perf_counter()

        state = decode_image(data)
        for stage in stages:
            state = stage.apply(options, state)
        result = encode_image(
            state,
            default_quality=self.default_quality,
            fallback_format=self.fallback_format,
        )

        logger.debug(
            "Pipeline [%s] rendered %dx%d %s in %s",
            ", ".join(stage.name for stage in stages),
            result.width,
            result.height,
            result.format,
            format_duration((time.perf_counter() - start) * 1000),
        )
        return result


__all__ = [
    "STAGES",
    "FormatStage",
    "ResizeStage",
    "RoundedStage",
    "TransformPipeline",
    "TransformStage",
    "corner_radius",
    "resolve_dimensions",
    "select_stages",
]
