"""Mapping of domain errors to HTTP responses.

The domain and application layers raise ``ImageProxyError`` subclasses with
no HTTP knowledge. This module is the single place where they are assigned a
status code. Route handlers convert exceptions with ``handle_route_errors``;
the resulting ``HTTPException`` is rendered as ``ErrorResponse`` by the
handler registered in ``middleware.setup_exception_handlers``.

Error Mapping:
    - ValidationError -> 400 (message is the list of field errors)
    - InvalidUrlError, NoOptionsProvidedError, NoApplicableOptionsError -> 400
    - ImageTooLargeError -> 413
    - InvalidImageContentError, FetchError -> 400
    - ProcessingError, InternalError, anything else -> 500
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import NoReturn

from fastapi import HTTPException, status

from image_proxy.api.models import RequestContext
from image_proxy.domain.exceptions import (
    FetchError,
    ImageProxyError,
    ImageTooLargeError,
    InternalError,
    InvalidUrlError,
    NoApplicableOptionsError,
    NoOptionsProvidedError,
    ProcessingError,
    ValidationError,
)
from image_proxy.telemetry.structured_logging import log_request_event

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def map_exception(exc: Exception) -> tuple[int, str | list[str]]:
    """Return ``(status_code, message)`` for an exception.

    Example:
        >>> map_exception(NoOptionsProvidedError())
        (400, 'No options provided')
    """
    match exc:
        case ValidationError():
            return status.HTTP_400_BAD_REQUEST, list(exc.errors)
        case InvalidUrlError() | NoOptionsProvidedError() | NoApplicableOptionsError():
            return status.HTTP_400_BAD_REQUEST, exc.message
        case ImageTooLargeError():
            return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, exc.message
        case FetchError():
            return status.HTTP_400_BAD_REQUEST, exc.message
        case ProcessingError():
            return status.HTTP_500_INTERNAL_SERVER_ERROR, exc.message
        case _:
            return status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE


def handle_route_errors(
    ctx: RequestContext,
    operation_name: str,
    *,
    start_time: float | None = None,
    event_builder: Callable[[], dict[str, object]] | None = None,
) -> Callable[[Exception], NoReturn]:
    """Create an error handler for a route.

    The returned function logs the failure (application log and structured
    request log) and raises the matching ``HTTPException``.

    Args:
        ctx: Request context with request_id for logging.
        operation_name: Operation name used in log events (e.g. "proxy").
        start_time: ``time.perf_counter()`` reading when the request started.
        event_builder: Extra fields for the structured event.

    Example:
        >>> error_handler = handle_route_errors(ctx, "proxy")
        >>> try:
        ...     result = await use_case.execute(url, query)
        ... except Exception as exc:
        ...     error_handler(exc)
    """

    def _build_event(**extra: object) -> dict[str, object]:
        event: dict[str, object] = {
            "event": f"{operation_name}_request",
            "status": "error",
            "request_id": ctx.request_id,
            "client_ip": ctx.client_ip,
        }
        if start_time is not None:
            event["latency_ms"] = round((time.perf_counter() - start_time) * 1000, 3)
        if event_builder:
            event.update({k: v for k, v in event_builder().items() if v is not None})
        event.update({k: v for k, v in extra.items() if v is not None})
        return event

    def handle_error(exc: Exception) -> NoReturn:
        match exc:
            case HTTPException():
                raise exc

        status_code, message = map_exception(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "%s_failed: request_id=%s, error_type=%s, error=%s",
                operation_name,
                ctx.request_id,
                type(exc).__name__,
                exc,
                exc_info=isinstance(exc, InternalError) or not isinstance(exc, ImageProxyError),
            )
        else:
            logger.warning(
                "%s_rejected: request_id=%s, status=%s, error=%s",
                operation_name,
                ctx.request_id,
                status_code,
                exc,
            )

        log_request_event(
            _build_event(
                status_code=status_code,
                error_type=type(exc).__name__,
                error_message=str(exc),
                upstream_status=getattr(exc, "upstream_status", None),
            )
        )
        raise HTTPException(status_code=status_code, detail=message) from exc

    return handle_error


__all__ = ["INTERNAL_ERROR_MESSAGE", "handle_route_errors", "map_exception"]
