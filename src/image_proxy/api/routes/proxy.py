"""Proxy route: fetch, transform and return one image.

Endpoint:
    GET /{source_url}
        - source_url: percent-encoded absolute http(s) URL of the origin image
        - Query: width, height, size, quality, format, rounded, optimize
        - Response: image bytes with Content-Type, Content-Disposition and an
          immutable Cache-Control directive
        - Errors: ErrorResponse JSON (400, 413, 500)
        - Rate Limited: Yes (``[api] rate_limit``)
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, Request, Response

from image_proxy.api.dependencies import get_proxy_use_case, get_request_context
from image_proxy.api.error_handlers import handle_route_errors
from image_proxy.api.middleware import limiter
from image_proxy.api.models import ErrorResponse
from image_proxy.api.response_builders import build_image_response
from image_proxy.application.use_cases import ProxyImageUseCase
from image_proxy.infrastructure.config import settings
from image_proxy.telemetry.structured_logging import log_request_event

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Invalid URL, options or origin image"},
    413: {"model": ErrorResponse, "description": "Origin image larger than the size limit"},
    500: {"model": ErrorResponse, "description": "Image processing failed"},
}


@router.get(
    "/{source_url:path}",
    tags=["Proxy"],
    response_class=Response,
    response_model=None,
    responses={200: {"content": {"image/*": {}}}, **_ERROR_RESPONSES},
)
@limiter.limit(settings.api.rate_limit)
async def proxy_image(
    request: Request,
    source_url: str,
    use_case: ProxyImageUseCase = Depends(get_proxy_use_case),  # noqa: B008
) -> Response:
    """Transform the image at ``source_url`` according to the query options."""
    ctx = get_request_context(request)
    start_time = time.perf_counter()
    query = dict(request.query_params)

    error_handler = handle_route_errors(
        ctx,
        "proxy",
        start_time=start_time,
        event_builder=lambda: {"source_url": source_url, "options": query or None},
    )
    try:
        proxy_result = await use_case.execute(source_url, query)
    except Exception as exc:
        error_handler(exc)

    result = proxy_result.result
    log_request_event(
        {
            "event": "proxy_request",
            "status": "success",
            "request_id": ctx.request_id,
            "client_ip": ctx.client_ip,
            "source_url": proxy_result.source_url,
            "options": proxy_result.options.as_dict(),
            "cache": proxy_result.cache,
            "format": result.format,
            "width": result.width,
            "height": result.height,
            "bytes": result.content_length,
            "status_code": 200,
            "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
        }
    )
    return build_image_response(proxy_result)


__all__ = ["router"]
