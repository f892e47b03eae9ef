"""API response models for the Image Proxy Service.

Image responses are raw bytes; the models here cover the JSON surface:
errors, health and cache statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body returned for every failed request.

    Attributes:
        status_code: HTTP status code (serialized as ``statusCode``).
        message: Human-readable message. Option validation failures carry one
            message per offending field.
        timestamp: Time the error was produced (ISO 8601, UTC).
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
    )

    status_code: int = Field(..., alias="statusCode", ge=400, le=599)
    message: str | list[str] = Field(..., description="Error message(s)")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_content(self) -> dict[str, object]:
        """Return the JSON-ready body with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    status: Literal["healthy", "unhealthy"] = Field(
        ..., description="Service status: 'healthy' or 'unhealthy'"
    )
    version: str = Field(..., description="API version")
    uptime_seconds: float = Field(..., ge=0.0, description="Seconds since startup")


class CacheTierStats(BaseModel):
    """Statistics of one cache tier.

    Attributes:
        size: Live entries currently stored.
        max_size: Capacity of the tier.
        hits: Lookups served from the store.
        misses: Lookups that started a computation.
        coalesced: Lookups that joined a computation already running.
        in_flight: Computations currently running.
        hit_rate: hits / all lookups.
        ttl_seconds: Entry time-to-live.
    """

    model_config = ConfigDict(extra="ignore")

    size: int = Field(..., ge=0)
    max_size: int = Field(..., ge=1)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    coalesced: int = Field(..., ge=0)
    in_flight: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0)
    ttl_seconds: float = Field(..., gt=0.0)


class CacheStatsResponse(BaseModel):
    """Response model for the cache statistics endpoint."""

    model_config = ConfigDict(extra="forbid")

    origin_cache: CacheTierStats
    result_cache: CacheTierStats


@dataclass(slots=True, frozen=True)
class RequestContext:
    """Context for tracking API requests.

    Attributes:
        request_id: Unique request identifier (UUID string).
        client_ip: Client IP address extracted from request.
        user_agent: User-Agent header value. None if not present.
    """

    request_id: str
    client_ip: str
    user_agent: str | None = None


__all__ = [
    "CacheStatsResponse",
    "CacheTierStats",
    "ErrorResponse",
    "HealthResponse",
    "RequestContext",
]
