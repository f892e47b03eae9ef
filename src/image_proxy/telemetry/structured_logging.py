"""Structured JSONL logging of proxy requests.

Every request handled by the proxy route produces one JSON object appended to
``logs/requests.jsonl`` under the project root. The request logger does not
propagate, so these events never duplicate the human-readable application
log.

Event Schema:
    - event: Event type (``proxy_request``, ``http_request``)
    - timestamp: ISO 8601 UTC timestamp (injected when missing)
    - request_id, client_ip, status ("success"/"error"), status_code
    - Proxy events add source_url, options, cache, format, bytes, latency_ms
    - Error events add error_type and error_message
"""

from __future__ import annotations

import functools
import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from image_proxy.core.utils import get_project_root

_DATETIME_ADAPTER = TypeAdapter(datetime)


@functools.cache
def _get_logs_dir() -> Path:
    logs_dir = get_project_root() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


REQUEST_LOGGER = logging.getLogger("image_proxy.requests")
if not REQUEST_LOGGER.handlers:
    REQUEST_LOGGER.setLevel(logging.INFO)
    handler = logging.FileHandler(_get_logs_dir() / "requests.jsonl", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    REQUEST_LOGGER.addHandler(handler)
    REQUEST_LOGGER.propagate = False


def _json_default(value: Any) -> Any:
    match value:
        case datetime():
            return _DATETIME_ADAPTER.dump_python(value, mode="json")
        case Enum():
            return value.value
        case _:
            return str(value)


def log_request_event(event: dict[str, Any]) -> None:
    """Emit a structured request event.

    Args:
        event: Event payload. ``timestamp`` is added when missing (the dict is
            mutated).

    Example:
        >>> log_request_event({
        ...     "event": "proxy_request",
        ...     "status": "success",
        ...     "source_url": "https://example.com/cat.png",
        ...     "cache": "hit",
        ...     "latency_ms": 1.8,
        ... })
    """
    event.setdefault("timestamp", datetime.now(UTC).isoformat())
    REQUEST_LOGGER.info(json.dumps(event, default=_json_default))


__all__ = ["REQUEST_LOGGER", "log_request_event"]
