"""Response builders for rendered images."""

from __future__ import annotations

from fastapi import Response

from image_proxy.application.use_cases import ProxyResult

CACHE_CONTROL = "public, max-age=3600, immutable"


def build_image_response(proxy_result: ProxyResult) -> Response:
    """Build the 200 response carrying the rendered image bytes.

    Headers:
        - Content-Type: ``image/<format>``
        - Content-Disposition: ``inline; filename="<name>.<format>"``
        - Cache-Control: long-lived and immutable
        - X-Cache: how the result cache served the request (hit/miss/joined)
    """
    result = proxy_result.result
    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'inline; filename="{proxy_result.filename}"',
            "Cache-Control": CACHE_CONTROL,
            "X-Cache": str(proxy_result.cache),
        },
    )


__all__ = ["CACHE_CONTROL", "build_image_response"]
