"""URL helpers: source validation, cache keys, origin URLs and filenames.

The URL guard accepts absolute ``http``/``https`` URLs only. A string without
a scheme is never promoted to a default host, and parse failures are reported
as "not valid" rather than raised.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, unquote, unquote_plus, urlencode, urlsplit, urlunsplit

from image_proxy.domain.value_objects import OPTION_PARAMETERS

_ALLOWED_SCHEMES = frozenset({"http", "https"})
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]", flags=re.ASCII)
DEFAULT_FILENAME = "image"


def is_valid_http_url(value: str) -> bool:
    """Return True iff ``value`` is an absolute http(s) URL with a host.

    Example:
        >>> is_valid_http_url("https://example.com/cat.png")
        True
        >>> is_valid_http_url("example.com/cat.png")
        False
    """
    if not isinstance(value, str) or not value:
        return False
    if any(char.isspace() or ord(char) < 0x20 for char in value):
        return False
    try:
        parts = urlsplit(value)
        # Accessing .port validates it and raises ValueError when malformed.
        _ = parts.port
    except ValueError:
        return False
    return parts.scheme in _ALLOWED_SCHEMES and bool(parts.hostname)


def decode_source_path(raw: str) -> str:
    """Decode the source URL captured from the request path.

    ASGI servers already percent-decode the path once. A value that still has
    no ``://`` was encoded twice and is decoded again.
    """
    if "://" in raw:
        return raw
    return unquote(raw)


def canonicalize_source_url(url: str) -> str:
    """Return the cache key form of a validated source URL.

    Scheme and host are lower-cased, the fragment is dropped, query
    parameters named like proxy options are removed, and the remaining query
    pairs are sorted so that equivalent URLs collide.

    Example:
        >>> canonicalize_source_url("HTTPS://Example.com/a.png?width=5&v=2")
        'https://example.com/a.png?v=2'
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = host if parts.port is None else f"{host}:{parts.port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    query = sorted(
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in OPTION_PARAMETERS
    )
    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", urlencode(query), ""))


def origin_fetch_url(url: str) -> str:
    """Return the URL to request from the origin for a validated source URL.

    Unlike the cache key, this keeps the query as the caller wrote it: order,
    encoding and valueless flags are preserved. Only the fragment and
    parameters named like proxy options are removed.

    Example:
        >>> origin_fetch_url("https://Example.com/a.png?b=2&width=5&a=%2F&flag#x")
        'https://Example.com/a.png?b=2&a=%2F&flag'
    """
    parts = urlsplit(url)
    query = "&".join(
        segment
        for segment in parts.query.split("&")
        if segment and unquote_plus(segment.split("=", 1)[0]) not in OPTION_PARAMETERS
    )
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


def derive_filename(url: str) -> str:
    """Return the download name stem for ``url``.

    The last path segment without its extension, restricted to a header-safe
    character set; ``image`` when nothing usable remains.

    Example:
        >>> derive_filename("https://example.com/pets/cat.large.png")
        'cat'
    """
    segment = unquote(urlsplit(url).path).rsplit("/", 1)[-1]
    stem = segment.split(".", 1)[0]
    stem = _UNSAFE_FILENAME_CHARS.sub("_", stem)
    return stem or DEFAULT_FILENAME


__all__ = [
    "DEFAULT_FILENAME",
    "canonicalize_source_url",
    "decode_source_path",
    "derive_filename",
    "is_valid_http_url",
    "origin_fetch_url",
]
