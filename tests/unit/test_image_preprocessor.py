"""Unit tests for ImagePreprocessor."""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from src.utils.image_preprocessor import ImagePreprocessor


@pytest.fixture()
def preprocessor() -> ImagePreprocessor:
    return ImagePreprocessor(min_width=1000, target_height=1200)


def _encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def _gradient(width: int, height: int) -> Image.Image:
    row = np.linspace(60, 180, width, dtype=np.uint8)
    return Image.fromarray(np.tile(row, (height, 1))).convert("RGB")


# ======================================================================
# Upscale
# ======================================================================


class TestUpscale:
    def test_upscales_to_target_height(self, preprocessor: ImagePreprocessor) -> None:
        result = preprocessor.upscale(Image.new("RGB", (300, 200)))

        assert result.height == 1200
        assert result.width == 1800

    def test_tall_image_is_not_resized(self, preprocessor: ImagePreprocessor) -> None:
        img = Image.new("RGB", (300, 1500))

        assert preprocessor.upscale(img) is img


class TestNormalize:
    def test_stretches_to_full_range(self, preprocessor: ImagePreprocessor) -> None:
        result = preprocessor.normalize(_gradient(100, 10))

        pixels = np.array(result)
        assert result.mode == "L"
        assert pixels.min() == 0
        assert pixels.max() == 255


class TestPrepareForOcr:
    def test_large_image_passes_through(self, preprocessor: ImagePreprocessor) -> None:
        data = _encode(Image.new("RGB", (1200, 800), (255, 255, 255)))

        assert preprocessor.prepare_for_ocr(data) is data

    def test_small_image_becomes_upscaled_png(self, preprocessor: ImagePreprocessor) -> None:
        data = _encode(_gradient(200, 100), fmt="JPEG")

        result = preprocessor.prepare_for_ocr(data)

        assert result.startswith(b"\x89PNG")
        with Image.open(io.BytesIO(result)) as img:
            assert img.height == 1200
            assert img.mode == "L"

    def test_needs_preprocessing_threshold(self, preprocessor: ImagePreprocessor) -> None:
        assert preprocessor.needs_preprocessing(Image.new("RGB", (999, 10)))
        assert not preprocessor.needs_preprocessing(Image.new("RGB", (1000, 10)))
