"""
Behavioral tests for TOML-backed settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from image_proxy.domain.value_objects import MAX_IMAGE_BYTES, ImageFormat
from image_proxy.infrastructure.config import (
    CacheConfig,
    FetchConfig,
    Settings,
    get_settings,
)


class TestDefaults:
    """Behavioral tests for default settings."""

    def test_defaults(self):
        """Test that every section has production defaults."""
        config = Settings()

        assert config.api.port == 3000
        assert config.fetch.max_image_bytes == MAX_IMAGE_BYTES
        assert config.origin_cache.ttl_seconds == 3600.0
        assert config.result_cache.ttl_seconds == 3600.0
        assert config.transform.default_quality == 80
        assert config.transform.fallback_format is ImageFormat.WEBP

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test that a missing config file is not an error."""
        assert Settings.from_toml(tmp_path / "absent.toml") == Settings()

    def test_get_settings_is_cached(self):
        """Test that get_settings() returns a single instance."""
        assert get_settings() is get_settings()


class TestFromToml:
    """Behavioral tests for Settings.from_toml()."""

    def test_loads_sections(self, tmp_path):
        """Test that TOML values override defaults section by section."""
        path = tmp_path / "config.toml"
        path.write_text(
            """
[api]
port = 8080
rate_limit = "10/second"

[fetch]
max_image_bytes = 2048
max_retries = 4

[result_cache]
max_size = 16
ttl_seconds = 60

[transform]
default_quality = 65
fallback_format = "png"
""",
            encoding="utf-8",
        )

        config = Settings.from_toml(path)

        assert config.api.port == 8080
        assert config.api.rate_limit == "10/second"
        assert config.fetch.max_image_bytes == 2048
        assert config.fetch.max_retries == 4
        assert config.result_cache.max_size == 16
        assert config.result_cache.ttl_seconds == 60.0
        assert config.origin_cache == CacheConfig()
        assert config.transform.default_quality == 65
        assert config.transform.fallback_format is ImageFormat.PNG

    def test_invalid_toml_raises_value_error(self, tmp_path):
        """Test that unparsable TOML is reported with the file path."""
        path = tmp_path / "config.toml"
        path.write_text("[api\nport = ", encoding="utf-8")

        with pytest.raises(ValueError, match="Failed to load config"):
            Settings.from_toml(path)

    def test_out_of_range_value_raises_value_error(self, tmp_path):
        """Test that schema violations in the file are rejected."""
        path = tmp_path / "config.toml"
        path.write_text("[transform]\ndefault_quality = 0\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Failed to load config"):
            Settings.from_toml(path)


class TestFetchConfig:
    """Behavioral tests for FetchConfig validation."""

    def test_user_agent_stripped(self):
        """Test that the user agent is trimmed."""
        assert FetchConfig(user_agent="  proxy/2 ").user_agent == "proxy/2"

    def test_blank_user_agent_rejected(self):
        """Test that an empty user agent is invalid."""
        with pytest.raises(PydanticValidationError):
            FetchConfig(user_agent="   ")

    def test_timeout_must_be_positive(self):
        """Test that a zero timeout is invalid."""
        with pytest.raises(PydanticValidationError):
            FetchConfig(timeout_seconds=0)
