"""Domain exceptions for the Image Proxy Service.

This module defines the single error taxonomy threaded through every
component of the proxy. Exceptions carry a human-readable message and,
where useful, structured detail; they carry no HTTP knowledge. Status codes
are assigned only at the API boundary (see ``api/error_handlers.py``).

Exception Hierarchy:
    - ImageProxyError: Base exception for all proxy errors
        - ValidationError: Option values or types are invalid
        - InvalidUrlError: Source is not an absolute http(s) URL
        - NoOptionsProvidedError: No recognized option in the request
        - NoApplicableOptionsError: Options select no transform stage
        - FetchError: Origin unreachable or returned an error status
            - InvalidImageContentError: Origin returned non-image content
            - ImageTooLargeError: Origin body exceeds the size bound
        - ProcessingError: Codec or transform failure
        - InternalError: Anything unanticipated
"""

from __future__ import annotations

from collections.abc import Sequence


class ImageProxyError(Exception):
    """Base exception for all image proxy errors.

    Catching ImageProxyError catches every anticipated failure of the
    request flow. Anything else reaching the API boundary is treated as an
    internal error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ImageProxyError):
    """Raised when one or more option values are invalid.

    Attributes:
        errors: One message per offending field, in field order. Never empty.
    """

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: tuple[str, ...] = tuple(errors)
        super().__init__("Invalid image options: " + "; ".join(self.errors))


class InvalidUrlError(ImageProxyError):
    """Raised when the source is not an absolute http(s) URL."""

    def __init__(self, url: str) -> None:
        super().__init__("Invalid URL")
        self.url = url


class NoOptionsProvidedError(ImageProxyError):
    """Raised when the request carries no recognized option."""

    def __init__(self) -> None:
        super().__init__("No options provided")


class NoApplicableOptionsError(ImageProxyError):
    """Raised when the options select no transform stage."""

    def __init__(self) -> None:
        super().__init__("No processors found for the given options")


class FetchError(ImageProxyError):
    """Raised when the origin image cannot be fetched.

    Attributes:
        url: Source URL that was requested.
        upstream_status: HTTP status returned by the origin, if any.
    """

    def __init__(self, message: str, url: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.upstream_status = upstream_status


class InvalidImageContentError(FetchError):
    """Raised when the origin responds with a non-image content type."""

    def __init__(self, url: str, content_type: str | None) -> None:
        super().__init__("Invalid image", url)
        self.content_type = content_type


class ImageTooLargeError(FetchError):
    """Raised when the origin body exceeds the configured size bound."""

    def __init__(self, url: str, limit_bytes: int, actual_bytes: int | None = None) -> None:
        super().__init__(f"Image exceeds the maximum size of {limit_bytes:,} bytes", url)
        self.limit_bytes = limit_bytes
        self.actual_bytes = actual_bytes


class ProcessingError(ImageProxyError):
    """Raised when decoding, transforming or encoding the image fails.

    Attributes:
        attribute: Name of the missing image attribute, when the failure was
            caused by unavailable metadata.
    """

    def __init__(self, message: str, attribute: str | None = None) -> None:
        super().__init__(message)
        self.attribute = attribute


class InternalError(ImageProxyError):
    """Raised for failures that fit no other category.

    The use case wraps unexpected exceptions from fetching or rendering in
    this error, chaining the original. Its message is logged but never sent
    to clients, which see the generic 500 message.
    """


__all__ = [
    "FetchError",
    "ImageProxyError",
    "ImageTooLargeError",
    "InternalError",
    "InvalidImageContentError",
    "InvalidUrlError",
    "NoApplicableOptionsError",
    "NoOptionsProvidedError",
    "ProcessingError",
    "ValidationError",
]
