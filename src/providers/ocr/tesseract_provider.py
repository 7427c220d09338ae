"""Tesseract OCR provider.

Wraps pytesseract to recognise text in uploaded images and in PDF pages
rendered to images.  Tesseract is CPU-bound and synchronous, so each call
runs in a worker thread to keep the event loop free for concurrent
ingestion runs.
"""

from __future__ import annotations

import asyncio
import io
import time

import pytesseract
from PIL import Image

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import OCRPage
from src.utils.errors import OCRExtractionError
from src.utils.logging import get_logger


class TesseractOCRProvider(IOCRProvider):
    """OCR provider backed by Google Tesseract via pytesseract.

    Parameters
    ----------
    language:
        Tesseract language pack(s), e.g. ``"eng"`` or ``"eng+deu"``.
    config:
        Extra Tesseract CLI flags (page segmentation mode, etc.).
    """

    def __init__(self, language: str = "eng", config: str = "") -> None:
        self._language = language
        self._config = config
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IOCRProvider interface
    # ------------------------------------------------------------------

    async def extract_text(self, image_bytes: bytes) -> OCRPage:
        """Recognise text in an encoded image.

        A blank image yields an empty :class:`OCRPage` rather than an
        error; callers decide whether empty text is fatal.
        """
        start = time.perf_counter()
        try:
            text, confidence = await asyncio.to_thread(self._recognise, image_bytes)
        except Exception as exc:
            self._logger.error(
                "ocr_extraction_failed",
                provider="tesseract",
                error=str(exc),
                processing_time=round(time.perf_counter() - start, 3),
            )
            raise OCRExtractionError(
                f"Tesseract OCR failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        elapsed = time.perf_counter() - start
        self._logger.debug(
            "ocr_extraction_complete",
            provider="tesseract",
            characters=len(text),
            confidence=round(confidence, 1),
            processing_time=round(elapsed, 3),
        )
        return OCRPage(
            text=text,
            confidence=confidence,
            provider_used=self.get_provider_name(),
            processing_time=elapsed,
        )

    def get_provider_name(self) -> str:
        return "tesseract"

    def is_available(self) -> bool:
        """Check that the Tesseract binary can be found."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except (pytesseract.TesseractNotFoundError, OSError):
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _recognise(self, image_bytes: bytes) -> tuple[str, float]:
        with Image.open(io.BytesIO(image_bytes)) as img:
            image = img.convert("RGB")
        data = pytesseract.image_to_data(
            image,
            lang=self._language,
            output_type=pytesseract.Output.DICT,
            config=self._config,
        )
        return self._assemble_text(data)

    @staticmethod
    def _assemble_text(data: dict) -> tuple[str, float]:
        """Rebuild text from word-level ``image_to_data`` output.

        Words with non-positive confidence are noise.  A change of
        block, paragraph or line number starts a new line.
        """
        lines: list[list[str]] = []
        confidences: list[float] = []
        prev_key: tuple | None = None
        line_nums = data.get("line_num") or [0] * len(data["text"])

        for i, raw_word in enumerate(data["text"]):
            word = raw_word.strip()
            conf = float(data["conf"][i])
            if not word or conf <= 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], line_nums[i])
            if key != prev_key:
                lines.append([])
                prev_key = key
            lines[-1].append(word)
            confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines).strip()
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return text, min(100.0, confidence)
