"""
Pytest configuration and fixtures for Image Proxy Service tests.
"""

import sys
from pathlib import Path

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from tests.helpers import SOURCE_URL, FakeTimer, OriginStub, build_harness, make_image_bytes


@pytest.fixture
def png_400x300() -> bytes:
    return make_image_bytes(400, 300)


@pytest.fixture
def png_800x600() -> bytes:
    return make_image_bytes(800, 600)


@pytest.fixture
def png_200x100() -> bytes:
    return make_image_bytes(200, 100)


@pytest.fixture
def fake_timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def origin(png_400x300) -> OriginStub:
    """Origin serving a 400x300 PNG at SOURCE_URL."""
    stub = OriginStub()
    stub.add(SOURCE_URL, png_400x300)
    return stub


@pytest.fixture
def harness(origin):
    """Proxy use case over fresh caches and the scripted origin."""
    return build_harness(origin)


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset global state before each test to ensure isolation."""
    yield

    if "image_proxy.api.server" in sys.modules:
        from image_proxy.api.server import app

        app.dependency_overrides.clear()

    if "image_proxy.api.middleware" in sys.modules:
        from image_proxy.api.middleware import limiter

        limiter.reset()
