"""Middleware and exception handlers for the API.

Middleware Stack:
    1. StructuredLoggingMiddleware: Logs every HTTP request as a JSONL event
    2. CORSMiddleware: Handles cross-origin requests
    3. Rate Limiting: Per-endpoint limits via ``@limiter.limit``

Every error, whether raised by a route, by routing itself (404/405) or by
the rate limiter, is rendered as ``ErrorResponse``:
``{"statusCode": ..., "message": ..., "timestamp": ...}``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from image_proxy.api.dependencies import get_request_context
from image_proxy.api.error_handlers import INTERNAL_ERROR_MESSAGE
from image_proxy.api.models import ErrorResponse
from image_proxy.infrastructure.config import settings
from image_proxy.telemetry.structured_logging import log_request_event

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.api.rate_limit_enabled)

RATE_LIMIT_RETRY_AFTER_SECONDS = 60


def error_response(
    status_code: int,
    message: str | list[str],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error response used for every failure."""
    body = ErrorResponse(status_code=status_code, message=message)
    return JSONResponse(status_code=status_code, content=body.to_content(), headers=headers)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured ``http_request`` event per HTTP request.

    The event is written in ``finally`` so failed requests are logged too;
    exceptions are re-raised untouched.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()
        ctx = get_request_context(request)
        status_code: int | None = None
        error_type: str | None = None
        error_message: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers.setdefault("X-Request-ID", ctx.request_id)
            return response
        except Exception as exc:
            status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
            error_type = type(exc).__name__
            error_message = str(exc)
            raise
        finally:
            event: dict[str, object] = {
                "event": "http_request",
                "request_id": ctx.request_id,
                "client_ip": ctx.client_ip,
                "path": request.url.path,
                "method": request.method,
                "status_code": status_code,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
            }
            if error_type:
                event["error_type"] = error_type
                event["error_message"] = error_message
            log_request_event(event)


def setup_middleware(app: FastAPI) -> None:
    """Configure middleware for the FastAPI application.

    Args:
        app: FastAPI application instance to configure.
    """
    app.add_middleware(StructuredLoggingMiddleware)

    app.state.limiter = limiter

    # Origins come from config.toml [api] origins = "https://a.example,https://b.example"
    cors_origins = settings.api.origins
    allow_origins = (
        [origin.strip() for origin in cors_origins.split(",")] if cors_origins != "*" else ["*"]
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_origins != ["*"],
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Cache", "X-Request-ID"],
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers.

    Registers handlers for:
    - HTTPException (route errors, 404 unmatched route, 405, 503)
    - RequestValidationError (400)
    - RateLimitExceeded (429)
    - Exception (500 - catch-all)

    Args:
        app: FastAPI application instance.
    """

    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and detail == "Not Found":
            detail = f"Cannot {request.method} {request.url.path}"
        message = detail if isinstance(detail, (str, list)) else str(detail)
        return error_response(exc.status_code, message, headers=exc.headers)

    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        ctx = get_request_context(request)
        errors = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        logger.warning("validation_error: request_id=%s, errors=%s", ctx.request_id, errors)
        return error_response(status.HTTP_400_BAD_REQUEST, errors or "Invalid request")

    async def rate_limit_exception_handler(
        request: Request, exc: RateLimitExceeded
    ) -> JSONResponse:
        ctx = get_request_context(request)
        logger.warning(
            "rate_limit_exceeded: request_id=%s, client_ip=%s", ctx.request_id, ctx.client_ip
        )
        return error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(RATE_LIMIT_RETRY_AFTER_SECONDS)},
        )

    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        ctx = get_request_context(request)
        logger.exception(
            "unhandled_exception: request_id=%s, error_type=%s, error=%s",
            ctx.request_id,
            type(exc).__name__,
            exc,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(RateLimitExceeded)(rate_limit_exception_handler)
    app.exception_handler(Exception)(global_exception_handler)


__all__ = [
    "StructuredLoggingMiddleware",
    "error_response",
    "limiter",
    "setup_exception_handlers",
    "setup_middleware",
]
