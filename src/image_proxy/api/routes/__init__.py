"""API routes for the Image Proxy Service.

``system_router`` must be included before ``proxy_router``: the proxy route
matches every path.
"""

from image_proxy.api.routes.proxy import router as proxy_router
from image_proxy.api.routes.system import router as system_router

__all__ = ["proxy_router", "system_router"]
