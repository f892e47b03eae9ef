"""FastAPI application for the Image Proxy Service.

Endpoints:
    - GET / - Usage page
    - GET /health - Health check
    - GET /stats - Cache statistics
    - GET /{source_url} - Fetch, transform and return an image

Run with ``image-proxy`` (see ``main``) or any ASGI server pointed at
``image_proxy.api.server:app``.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from image_proxy.api.lifespan import lifespan_context
from image_proxy.api.middleware import setup_exception_handlers, setup_middleware
from image_proxy.api.routes import proxy_router, system_router
from image_proxy.infrastructure.config import settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.api.title,
        description="On-the-fly image transformation proxy with a two-tier cache",
        version=settings.api.version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan_context,
    )

    setup_middleware(app)
    setup_exception_handlers(app)

    # System routes first: the proxy route matches every path.
    app.include_router(system_router)
    app.include_router(proxy_router)
    return app


app = create_app()


def main() -> None:
    """Run the API server with uvicorn using ``[api]`` settings."""
    logging.basicConfig(
        level=settings.api.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.api.log_level,
    )


if __name__ == "__main__":
    main()
