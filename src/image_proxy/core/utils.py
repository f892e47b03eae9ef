"""Core utility helpers for the Image Proxy Service.

Small, framework-agnostic formatting helpers used in log messages and the
usage page. Highlights include:

* Human-readable byte counts (``1.50 KB``).
* Human-readable durations from milliseconds (``500ms``, ``2m 30s``).
* Project root detection shared by configuration and log file resolution.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Final

_ROOT_MARKERS: Final = ("pyproject.toml", ".git")
_SIZE_UNITS: Final = ("B", "KB", "MB", "GB", "TB")


@functools.cache
def get_project_root() -> Path:
    """Return the repository root.

    Walks up from this file looking for a root marker and falls back to the
    directory three levels above the package (``src/image_proxy/core``).
    """
    here = Path(__file__).resolve()
    for parent in here.parents:
        if any((parent / marker).exists() for marker in _ROOT_MARKERS):
            return parent
    return here.parents[3]


def format_bytes(num_bytes: int) -> str:
    """Format a byte count using binary (1024) units.

    Args:
        num_bytes: Byte count. Values below one are reported as ``0 B``.

    Returns:
        Value with two decimals and its unit, e.g. ``"1.50 KB"``.

    Example:
        >>> format_bytes(1536)
        '1.50 KB'
    """
    if num_bytes < 1:
        return "0 B"
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{value:.2f} {_SIZE_UNITS[index]}"


def format_duration(ms: float) -> str:
    """Format a duration in milliseconds to a human-readable string.

    Example:
        >>> format_duration(1500)
        '1.50s'
        >>> format_duration(150_000)
        '2m 30s'
    """
    if ms < 0.001:
        return f"{round(ms * 1_000_000)}ns"
    if ms < 1:
        return f"{round(ms * 1000)}µs"
    if ms < 1000:
        return f"{round(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.2f}s"
    if ms < 3_600_000:
        minutes = int(ms // 60_000)
        seconds = round((ms % 60_000) / 1000)
        return f"{minutes}m {seconds}s"
    hours = int(ms // 3_600_000)
    minutes = int((ms % 3_600_000) // 60_000)
    return f"{hours}h {minutes}m"


__all__ = ["format_bytes", "format_duration", "get_project_root"]
