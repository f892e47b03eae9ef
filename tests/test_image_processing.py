"""
Behavioral tests for the Pillow-backed image codec operations.

Tests use real images generated in memory; nothing is mocked.
"""

from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
from PIL import Image

from image_proxy.domain.exceptions import ProcessingError
from image_proxy.domain.value_objects import ImageFormat
from image_proxy.infrastructure.image_processing import (
    ImageState,
    decode_image,
    encode_image,
    resize_image,
    round_corners,
)
from tests.helpers import make_image_bytes, open_image


def _noisy_state(size: int = 96) -> ImageState:
    img = Image.effect_noise((size, size), 64).convert("RGB")
    return ImageState(image=img, source_format=ImageFormat.PNG)


class TestDecodeImage:
    """Behavioral tests for decode_image()."""

    def test_decodes_png(self):
        """Test that PNG bytes decode with dimensions and source format."""
        state = decode_image(make_image_bytes(40, 30))

        assert (state.width, state.height) == (40, 30)
        assert state.source_format is ImageFormat.PNG
        assert state.output_format is None
        assert state.quality is None
        assert state.optimize is False

    @pytest.mark.parametrize(
        ("fmt", "expected"),
        [("JPEG", ImageFormat.JPEG), ("WEBP", ImageFormat.WEBP), ("GIF", None)],
    )
    def test_source_format_detection(self, fmt, expected):
        """Test that only png/jpeg/webp are recognized as source formats."""
        mode = "P" if fmt == "GIF" else "RGB"
        color = 3 if fmt == "GIF" else (10, 20, 30)

        state = decode_image(make_image_bytes(8, 8, fmt=fmt, mode=mode, color=color))

        assert state.source_format == expected

    @pytest.mark.parametrize("data", [b"", b"definitely not an image", b"\x89PNG\r\n\x1a\n"])
    def test_invalid_bytes_raise_processing_error(self, data):
        """Test that unreadable bytes become ProcessingError."""
        with pytest.raises(ProcessingError, match="Invalid image data"):
            decode_image(data)

    def test_truncated_image_raises_processing_error(self):
        """Test that a truncated stream is detected when loading."""
        data = make_image_bytes(64, 64, fmt="JPEG")

        with pytest.raises(ProcessingError):
            decode_image(data[: len(data) // 2])


class TestImageStateMetadata:
    """Behavioral tests for ImageState.metadata()."""

    def test_missing_attribute_names_it(self):
        """Test that unavailable metadata raises ProcessingError naming the attribute."""
        state = ImageState(image=SimpleNamespace(width=10))  # type: ignore[arg-type]

        assert state.metadata("width") == 10
        with pytest.raises(ProcessingError) as exc_info:
            state.metadata("height")

        assert exc_info.value.attribute == "height"
        assert "height" in exc_info.value.message

    def test_evolve_returns_new_state(self):
        """Test that evolve() leaves the original state untouched."""
        state = decode_image(make_image_bytes(4, 4))

        changed = state.evolve(quality=10)

        assert changed.quality == 10
        assert state.quality is None


class TestResizeImage:
    """Behavioral tests for resize_image()."""

    def test_resizes_to_exact_dimensions(self):
        """Test that width and height are applied exactly."""
        state = decode_image(make_image_bytes(100, 50))

        resized = resize_image(state, 30, 70)

        assert resized.image.size == (30, 70)
        assert state.image.size == (100, 50)

    def test_same_size_is_a_no_op(self):
        """Test that resizing to the current size returns the same state."""
        state = decode_image(make_image_bytes(20, 20))

        assert resize_image(state, 20, 20) is state

    def test_cover_crops_instead_of_stretching(self):
        """Test that cover mode keeps the aspect ratio and fills the box."""
        img = Image.new("RGB", (200, 100), (255, 0, 0))
        img.paste((0, 0, 255), (0, 0, 30, 100))
        state = ImageState(image=img)

        resized = resize_image(state, 100, 100, cover=True)

        assert resized.image.size == (100, 100)
        # The blue band on the far left is cropped away by the centered fit.
        assert resized.image.getpixel((0, 50))[0] > 200


class TestRoundCorners:
    """Behavioral tests for round_corners()."""

    def test_corners_transparent_center_opaque(self):
        """Test that the mask clears the corners and keeps the middle."""
        state = decode_image(make_image_bytes(100, 100))

        rounded = round_corners(state, 50)

        assert rounded.image.mode == "RGBA"
        assert rounded.image.getpixel((0, 0))[3] == 0
        assert rounded.image.getpixel((99, 99))[3] == 0
        assert rounded.image.getpixel((50, 50))[3] == 255
        assert rounded.image.getpixel((50, 3))[3] == 255

    def test_source_image_not_mutated(self):
        """Test that an RGBA source is copied, not modified in place."""
        img = Image.new("RGBA", (40, 40), (1, 2, 3, 255))
        state = ImageState(image=img)

        round_corners(state, 20)

        assert img.getpixel((0, 0)) == (1, 2, 3, 255)

    def test_existing_transparency_preserved(self):
        """Test that transparent pixels stay transparent inside the mask."""
        img = Image.new("RGBA", (40, 40), (0, 0, 0, 0))
        state = ImageState(image=img)

        rounded = round_corners(state, 5)

        assert rounded.image.getpixel((20, 20))[3] == 0

    def test_zero_radius_keeps_corners(self):
        """Test that radius 0 leaves every pixel opaque."""
        state = decode_image(make_image_bytes(10, 10))

        rounded = round_corners(state, 0)

        assert rounded.image.getpixel((0, 0))[3] == 255


class TestEncodeImage:
    """Behavioral tests for encode_image()."""

    @pytest.mark.parametrize("target", list(ImageFormat))
    def test_encodes_requested_format(self, target):
        """Test that the output format is honored and reported."""
        state = decode_image(make_image_bytes(32, 16)).evolve(output_format=target)

        result = encode_image(state)

        assert result.format is target
        assert result.media_type == f"image/{target.value}"
        assert (result.width, result.height) == (32, 16)
        assert open_image(result.data).format == target.value.upper()

    def test_keeps_source_format_by_default(self):
        """Test that the source format is reused when none is requested."""
        state = decode_image(make_image_bytes(8, 8, fmt="JPEG"))

        assert encode_image(state).format is ImageFormat.JPEG

    def test_unsupported_source_falls_back(self):
        """Test that a GIF source is encoded in the fallback format."""
        state = decode_image(make_image_bytes(8, 8, fmt="GIF", mode="P", color=1))

        assert encode_image(state).format is ImageFormat.WEBP
        assert encode_image(state, fallback_format=ImageFormat.PNG).format is ImageFormat.PNG

    def test_jpeg_flattens_alpha(self):
        """Test that transparent pixels are flattened onto white for JPEG."""
        img = Image.new("RGBA", (16, 16), (0, 0, 0, 0))
        state = ImageState(image=img, output_format=ImageFormat.JPEG)

        decoded = open_image(encode_image(state).data)

        assert decoded.mode == "RGB"
        assert all(channel > 240 for channel in decoded.getpixel((8, 8)))

    def test_png_and_webp_keep_alpha(self):
        """Test that rounded corners survive PNG and WebP encoding."""
        state = round_corners(decode_image(make_image_bytes(50, 50)), 25)

        for target in (ImageFormat.PNG, ImageFormat.WEBP):
            decoded = open_image(encode_image(state.evolve(output_format=target)).data)
            assert decoded.mode == "RGBA"
            assert decoded.getpixel((0, 0))[3] == 0

    def test_quality_changes_lossy_output(self):
        """Test that a lower quality produces a smaller JPEG."""
        state = _noisy_state().evolve(output_format=ImageFormat.JPEG)

        low = encode_image(state.evolve(quality=10))
        high = encode_image(state.evolve(quality=95))

        assert low.content_length < high.content_length

    def test_default_quality_applied(self):
        """Test that the configured default quality is used when none is set."""
        state = _noisy_state().evolve(output_format=ImageFormat.JPEG)

        default = encode_image(state, default_quality=80)
        explicit = encode_image(state.evolve(quality=80))

        assert default.data == explicit.data

    def test_optimize_accepted_for_every_format(self):
        """Test that the optimization pass produces decodable output."""
        state = _noisy_state(32).evolve(optimize=True)

        for target in ImageFormat:
            result = encode_image(state.evolve(output_format=target))
            assert open_image(result.data).size == (32, 32)

    def test_palette_image_converted_for_webp(self):
        """Test that palette images are converted before WebP encoding."""
        img = Image.open(io.BytesIO(make_image_bytes(8, 8, fmt="GIF", mode="P", color=2)))
        state = ImageState(image=img, output_format=ImageFormat.WEBP)

        assert open_image(encode_image(state).data).size == (8, 8)
