"""Dependency injection for FastAPI endpoints.

The lifespan builds the caches and the proxy use case once and stores them
here with ``set_dependencies()``. Routes receive them through ``Depends()``;
tests replace them with ``app.dependency_overrides``.

Dependency Flow:
    1. Lifespan startup builds fetcher, caches, pipeline and use case
    2. set_dependencies() stores the instances
    3. get_*() functions return them (503 if startup has not run)
"""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, Request, status
from slowapi.util import get_remote_address

from image_proxy.api.models import RequestContext
from image_proxy.application.use_cases import ProxyImageUseCase
from image_proxy.infrastructure.image_cache import OriginCache, ResultCache

logger = logging.getLogger(__name__)

# Global instances (initialized in lifespan)
_origin_cache: OriginCache | None = None
_result_cache: ResultCache | None = None
_proxy_use_case: ProxyImageUseCase | None = None


def set_dependencies(
    origin_cache: OriginCache | None,
    result_cache: ResultCache | None,
    proxy_use_case: ProxyImageUseCase | None,
) -> None:
    """Store the instances built at startup (``None`` clears them)."""
    global _origin_cache, _result_cache, _proxy_use_case
    _origin_cache = origin_cache
    _result_cache = result_cache
    _proxy_use_case = proxy_use_case


def _unavailable(component: str) -> HTTPException:
    logger.error("Dependency requested before startup: %s", component)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{component} not initialized",
    )


def get_origin_cache() -> OriginCache:
    if _origin_cache is None:
        raise _unavailable("Origin cache")
    return _origin_cache


def get_result_cache() -> ResultCache:
    if _result_cache is None:
        raise _unavailable("Result cache")
    return _result_cache


def get_proxy_use_case() -> ProxyImageUseCase:
    if _proxy_use_case is None:
        raise _unavailable("Proxy use case")
    return _proxy_use_case


def get_request_context(request: Request) -> RequestContext:
    """Extract (or reuse) the request context.

    The context is stored in ``request.state`` on first access so middleware,
    routes and error handlers share the same request_id.
    """
    ctx: RequestContext | None = getattr(request.state, "request_context", None)
    if ctx is None:
        ctx = RequestContext(
            request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
            client_ip=get_remote_address(request),
            user_agent=request.headers.get("user-agent"),
        )
        request.state.request_context = ctx
    return ctx


__all__ = [
    "get_origin_cache",
    "get_proxy_use_case",
    "get_request_context",
    "get_result_cache",
    "set_dependencies",
]
