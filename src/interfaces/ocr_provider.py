"""Abstract base class for OCR service providers.

Defines the contract for any OCR engine used to recognise text in raster
images: uploaded photos and scans, and PDF pages rendered to images.
Swapping engines requires only a new concrete class.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.extraction import OCRPage


# Concrete implementations: TesseractOCRProvider
# Located in: src/providers/ocr/
class IOCRProvider(ABC):
    """Contract for OCR engines consumed by the text extractor."""

    @abstractmethod
    async def extract_text(self, image_bytes: bytes) -> OCRPage:
        """Run OCR on an encoded image and return the recognised text.

        Parameters
        ----------
        image_bytes:
            Encoded image bytes (PNG, JPEG, TIFF, ...).  Preprocessing, if
            any, has already been applied by the caller.

        Returns
        -------
        OCRPage
            Recognised text (possibly empty) and mean confidence (0-100).

        Raises
        ------
        src.utils.errors.OCRExtractionError
            If the engine fails or the image cannot be decoded.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"tesseract"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the engine's binaries or credentials are present."""
