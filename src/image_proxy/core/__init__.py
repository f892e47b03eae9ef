"""Core helpers for the Image Proxy Service."""

from image_proxy.core.urls import (
    canonicalize_source_url,
    decode_source_path,
    derive_filename,
    is_valid_http_url,
    origin_fetch_url,
)
from image_proxy.core.utils import format_bytes, format_duration, get_project_root

__all__ = [
    "canonicalize_source_url",
    "decode_source_path",
    "derive_filename",
    "format_bytes",
    "format_duration",
    "get_project_root",
    "is_valid_http_url",
    "origin_fetch_url",
]
