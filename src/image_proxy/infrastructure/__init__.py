"""Infrastructure layer for the Image Proxy Service.

Concrete adapters behind the application interfaces:
- Configuration (Settings, loaded from config.toml)
- Origin fetching over httpx
- Coalescing TTL caches for origin bytes and rendered results
- Pillow-backed transform pipeline
"""

from image_proxy.infrastructure.coalescing_cache import CacheOutcome, CoalescingCache
from image_proxy.infrastructure.config import Settings, get_settings, settings
from image_proxy.infrastructure.image_cache import OriginCache, ResultCache
from image_proxy.infrastructure.origin_fetcher import OriginFetcher
from image_proxy.infrastructure.pipeline import TransformPipeline

__all__ = [
    "CacheOutcome",
    "CoalescingCache",
    "OriginCache",
    "OriginFetcher",
    "ResultCache",
    "Settings",
    "TransformPipeline",
    "get_settings",
    "settings",
]
