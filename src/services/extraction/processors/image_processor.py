"""Raster image extraction: preprocess, then OCR."""

from __future__ import annotations

import asyncio

import structlog

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractedText, ExtractionMetadata
from src.utils.image_preprocessor import ImagePreprocessor

logger = structlog.get_logger(logger_name=__name__)


class ImageProcessor:
    """Runs uploaded photos and scans through preprocessing and OCR."""

    def __init__(self, ocr_provider: IOCRProvider, preprocessor: ImagePreprocessor) -> None:
        self._ocr = ocr_provider
        self._preprocessor = preprocessor

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        prepared = await asyncio.to_thread(self._preprocessor.prepare_for_ocr, data)
        page = await self._ocr.extract_text(prepared)
        logger.info(
            "image_processed",
            media_type=media_type,
            preprocessed=prepared is not data,
            characters=len(page.text),
            confidence=round(page.confidence, 1),
        )
        return ExtractedText(
            content=page.text,
            metadata=ExtractionMetadata(
                method="tesseract-ocr",
                confidence=page.confidence,
                page_count=1,
            ),
        )
