"""Application layer for the Image Proxy Service.

This package contains the proxy use case and the option normalizer. It
depends only on the domain layer, core helpers and the interfaces
(protocols) it defines for infrastructure dependencies.
"""

from image_proxy.application.interfaces import (
    OriginCacheInterface,
    OriginFetcherInterface,
    ResultCacheInterface,
    TransformPipelineInterface,
)
from image_proxy.application.options import (
    ImageOptionsSchema,
    coerce_query_value,
    describe_options,
    normalize_options,
)
from image_proxy.application.use_cases import ProxyImageUseCase, ProxyResult

__all__ = [
    "ImageOptionsSchema",
    "OriginCacheInterface",
    "OriginFetcherInterface",
    "ProxyImageUseCase",
    "ProxyResult",
    "ResultCacheInterface",
    "TransformPipelineInterface",
    "coerce_query_value",
    "describe_options",
    "normalize_options",
]
