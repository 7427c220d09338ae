"""Image preprocessing for OCR on uploaded raster images.

Phone photos and screenshots are often too small for Tesseract, which
works best with glyphs around 30px tall.  The preprocessing pipeline is:

    1. Upscale  : images narrower than ``min_width`` are resized to
                  ``target_height`` (aspect ratio kept, LANCZOS resampling)
    2. Sharpen  : unsharp mask to restore edges softened by upscaling
    3. Normalize: min-max stretch of grayscale intensity (OpenCV)

Images already at or above ``min_width`` are passed through untouched:
high-resolution scans gain nothing and the resize would only cost memory.
"""

from __future__ import annotations

import io

import cv2
import numpy as np
from PIL import Image, ImageFilter

from src.utils.logging import get_logger


class ImagePreprocessor:
    """Prepares raster images for OCR.

    Parameters
    ----------
    min_width:
        Images at least this wide skip preprocessing entirely.
    target_height:
        Height that small images are upscaled to.
    """

    def __init__(self, min_width: int = 1000, target_height: int = 1200) -> None:
        self._min_width = min_width
        self._target_height = target_height
        self._logger = get_logger(__name__)

    def needs_preprocessing(self, image: Image.Image) -> bool:
        return image.width < self._min_width

    def prepare_for_ocr(self, image_bytes: bytes) -> bytes:
        """Run the preprocessing pipeline on encoded image bytes.

        Args:
            image_bytes: Raw image file bytes (JPEG, PNG, etc.).

        Returns:
            The original bytes when the image is already high resolution,
            otherwise the preprocessed image as PNG bytes.
        """
        with Image.open(io.BytesIO(image_bytes)) as img:
            if not self.needs_preprocessing(img):
                self._logger.debug("preprocessing_skipped", width=img.width, height=img.height)
                return image_bytes
            image = img.convert("RGB")

        original_size = image.size
        image = self.upscale(image)
        image = self.sharpen(image)
        image = self.normalize(image)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        self._logger.debug(
            "image_preprocessed",
            original_size=original_size,
            final_size=image.size,
        )
        return buffer.getvalue()

    def upscale(self, image: Image.Image) -> Image.Image:
        """Resize so the height equals ``target_height``, keeping the aspect ratio."""
        if image.height >= self._target_height:
            return image
        scale = self._target_height / image.height
        new_width = max(1, round(image.width * scale))
        return image.resize((new_width, self._target_height), Image.LANCZOS)

    @staticmethod
    def sharpen(image: Image.Image) -> Image.Image:
        return image.filter(ImageFilter.UnsharpMask(radius=2, percent=150, threshold=3))

    @staticmethod
    def normalize(image: Image.Image) -> Image.Image:
        """Stretch grayscale intensities to the full 0-255 range.

        Returns a single-channel ("L") image, which is what Tesseract
        binarizes internally anyway.
        """
        gray = np.array(image.convert("L"))
        stretched = cv2.normalize(gray, None, alpha=0, beta=255, norm_type=cv2.NORM_MINMAX)
        return Image.fromarray(stretched.astype(np.uint8))
