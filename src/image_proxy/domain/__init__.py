"""Domain layer for the Image Proxy Service.

This package contains pure domain models, value objects, and the error
taxonomy, with no dependencies on frameworks, infrastructure, or external
libraries.
"""

from image_proxy.domain.entities import FetchedImage, ImageOptions, PipelineResult
from image_proxy.domain.exceptions import (
    FetchError,
    ImageProxyError,
    ImageTooLargeError,
    InternalError,
    InvalidImageContentError,
    InvalidUrlError,
    NoApplicableOptionsError,
    NoOptionsProvidedError,
    ProcessingError,
    ValidationError,
)
from image_proxy.domain.value_objects import ImageFormat, ResultKey

__all__ = [
    "FetchError",
    "FetchedImage",
    "ImageFormat",
    "ImageOptions",
    "ImageProxyError",
    "ImageTooLargeError",
    "InternalError",
    "InvalidImageContentError",
    "InvalidUrlError",
    "NoApplicableOptionsError",
    "NoOptionsProvidedError",
    "PipelineResult",
    "ProcessingError",
    "ResultKey",
    "ValidationError",
]
