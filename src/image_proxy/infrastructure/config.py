"""Centralized configuration management for the Image Proxy Service.

This module provides a single source of truth for all configuration values,
using a TOML config file with pydantic validation.

Design Principles:
    - TOML Configuration: Loads from config.toml in project root
    - Pydantic Validation: Type-safe configuration with validation
    - Sensible Defaults: All settings have production-ready defaults
    - Singleton Pattern: Cached settings instance via lru_cache

Configuration Loading:
    1. Reads config.toml from project root (if exists)
    2. Falls back to defaults for every missing section or key
    3. Validates all values using Pydantic

Configuration Sections:
    - APIConfig: FastAPI server, CORS and rate limiting
    - FetchConfig: Origin HTTP client (timeout, size bound, retries)
    - CacheConfig: Origin cache and result cache (size, TTL)
    - TransformConfig: Encoder defaults

Usage:
    from image_proxy.infrastructure.config import settings

    ttl = settings.result_cache.ttl_seconds
    timeout = settings.fetch.timeout_seconds
"""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from image_proxy.core.utils import get_project_root
from image_proxy.domain.value_objects import DEFAULT_QUALITY, MAX_IMAGE_BYTES, ImageFormat


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=3000, ge=1, le=65535, description="API server port")
    log_level: Literal["debug", "info", "warning", "error", "critical"] = Field(
        default="info", description="Logging level"
    )
    title: str = Field(default="Image Proxy Service", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    origins: str = Field(default="*", description="Allowed CORS origins (comma separated)")
    rate_limit: str = Field(default="600/minute", description="Proxy route rate limit")
    rate_limit_enabled: bool = Field(default=True, description="Enable rate limiting")


class FetchConfig(BaseModel):
    """Origin fetch configuration."""

    timeout_seconds: float = Field(
        default=30.0, gt=0.0, le=300.0, description="Origin request timeout (seconds)"
    )
    max_image_bytes: int = Field(
        default=MAX_IMAGE_BYTES,
        ge=1024,
        le=100 * 1024 * 1024,
        description="Largest accepted origin body in bytes",
    )
    max_retries: int = Field(
        default=2, ge=1, le=10, description="Attempts for transient transport errors"
    )
    retry_delay: float = Field(
        default=0.2, ge=0.0, le=10.0, description="Initial retry delay (seconds)"
    )
    follow_redirects: bool = Field(default=True, description="Follow origin redirects")
    user_agent: str = Field(default="image-proxy/1.0", description="User-Agent sent to origins")

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        """Reject empty user agents."""
        if not v.strip():
            msg = "user_agent must not be empty"
            raise ValueError(msg)
        return v.strip()


class CacheConfig(BaseModel):
    """In-memory cache configuration (one instance per tier)."""

    max_size: int = Field(
        default=256, ge=1, le=100_000, description="Max number of cached entries (count, not bytes)"
    )
    ttl_seconds: float = Field(
        default=3600.0, gt=0.0, le=7 * 86400.0, description="Entry TTL (seconds)"
    )


class TransformConfig(BaseModel):
    """Encoder defaults."""

    default_quality: int = Field(
        default=DEFAULT_QUALITY, ge=1, le=100, description="Quality when none is requested"
    )
    fallback_format: ImageFormat = Field(
        default=ImageFormat.WEBP,
        description="Output format when the source format cannot be re-encoded",
    )


class Settings(BaseModel):
    """Root settings class containing all configuration sections."""

    api: APIConfig = Field(default_factory=APIConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    origin_cache: CacheConfig = Field(default_factory=CacheConfig)
    result_cache: CacheConfig = Field(default_factory=CacheConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)

    @classmethod
    def from_toml(cls, config_path: Path | None = None) -> Settings:
        """Load settings from TOML file.

        Args:
            config_path: Path to config.toml. If None, uses config.toml in
                the project root.

        Returns:
            Settings instance populated from TOML file, or default settings
            if file not found.

        Raises:
            ValueError: If TOML file is invalid or contains validation errors.
        """
        if config_path is None:
            config_path = get_project_root() / "config.toml"

        if not config_path.exists():
            return cls()

        try:
            with Path(config_path).open("rb") as f:
                config_data = tomllib.load(f)

            return cls(
                api=APIConfig(**config_data.get("api", {})),
                fetch=FetchConfig(**config_data.get("fetch", {})),
                origin_cache=CacheConfig(**config_data.get("origin_cache", {})),
                result_cache=CacheConfig(**config_data.get("result_cache", {})),
                transform=TransformConfig(**config_data.get("transform", {})),
            )
        except Exception as exc:
            msg = f"Failed to load config from {config_path}: {exc}"
            raise ValueError(msg) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings.from_toml()


# Global settings instance
settings = get_settings()

__all__ = [
    "APIConfig",
    "CacheConfig",
    "FetchConfig",
    "Settings",
    "TransformConfig",
    "get_settings",
    "settings",
]
