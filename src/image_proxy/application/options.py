"""Option normalizer: raw query parameters to validated ``ImageOptions``.

Processing Steps:
    1. Coerce each raw string: ``"true"``/``"false"`` (any case) become
       booleans, finite numbers become ``int`` (integral) or ``float``, all
       other values stay strings.
    2. Validate against ``ImageOptionsSchema`` in pydantic strict mode, so
       no further cross-type coercion happens and every offending field is
       reported, not just the first. Unknown keys are ignored.
    3. Expand ``size`` into equal ``width`` and ``height`` and drop it.

The input mapping is never mutated.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from image_proxy.domain.entities import ImageOptions
from image_proxy.domain.exceptions import ValidationError
from image_proxy.domain.value_objects import (
    DIMENSION_MAX,
    DIMENSION_MIN,
    QUALITY_MAX,
    QUALITY_MIN,
    ROUNDED_MAX,
    ROUNDED_MIN,
    ImageFormat,
)

QueryValue = bool | int | float | str


class ImageOptionsSchema(BaseModel):
    """Schema of the proxy's query parameters.

    Bounds are enforced, never clamped. Field descriptions feed the usage
    page served at ``/``.
    """

    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)

    width: int | None = Field(
        None,
        ge=DIMENSION_MIN,
        le=DIMENSION_MAX,
        description="Resize image width (1-10000 pixels)",
    )
    height: int | None = Field(
        None,
        ge=DIMENSION_MIN,
        le=DIMENSION_MAX,
        description="Resize image height (1-10000 pixels)",
    )
    size: int | None = Field(
        None,
        ge=DIMENSION_MIN,
        le=DIMENSION_MAX,
        description="Resize both width and height to the same value (1-10000 pixels)",
    )
    quality: int | None = Field(
        None,
        ge=QUALITY_MIN,
        le=QUALITY_MAX,
        description="Output quality (1-100, default 80)",
    )
    format: Literal["png", "jpeg", "webp"] | None = Field(
        None,
        description="Output format: png, jpeg or webp (default: source format)",
    )
    rounded: int | None = Field(
        None,
        ge=ROUNDED_MIN,
        le=ROUNDED_MAX,
        description="Round the corners, as a percentage of half the shorter side (0-100)",
    )
    optimize: bool | None = Field(
        None,
        description="Re-encode the image with the encoder's optimization pass",
    )


def coerce_query_value(value: str) -> QueryValue:
    """Coerce one raw query value before schema validation.

    Example:
        >>> coerce_query_value("TRUE"), coerce_query_value("400"), coerce_query_value("cat")
        (True, 400, 'cat')
    """
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        number = float(value)
    except ValueError:
        return value
    if not math.isfinite(number):
        return value
    if number.is_integer():
        return int(number)
    return number


def _format_errors(exc: PydanticValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "options"
        messages.append(f"{field}: {error.get('msg', 'Invalid value')}")
    return messages


def normalize_options(query: Mapping[str, str]) -> ImageOptions:
    """Parse raw query parameters into validated ``ImageOptions``.

    Args:
        query: Raw key/value query parameters. Not mutated.

    Returns:
        Immutable ImageOptions with ``size`` already expanded.

    Raises:
        ValidationError: Listing every offending field.
    """
    coerced = {key: coerce_query_value(value) for key, value in query.items()}
    try:
        schema = ImageOptionsSchema.model_validate(coerced)
    except PydanticValidationError as exc:
        raise ValidationError(_format_errors(exc)) from exc

    width, height = schema.width, schema.height
    if schema.size is not None:
        width = height = schema.size

    return ImageOptions(
        width=width,
        height=height,
        quality=schema.quality,
        format=ImageFormat(schema.format) if schema.format is not None else None,
        rounded=schema.rounded,
        optimize=schema.optimize,
    )


def describe_options() -> list[tuple[str, str]]:
    """Return ``(name, description)`` for every supported option."""
    return [
        (name, field.description or "")
        for name, field in ImageOptionsSchema.model_fields.items()
    ]


__all__ = [
    "ImageOptionsSchema",
    "coerce_query_value",
    "describe_options",
    "normalize_options",
]
