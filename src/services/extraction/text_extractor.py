"""Format-dispatching text extraction for uploaded documents.

# ─── ARCHITECTURE ──────────────────────────────────────────────────────
#
# TextExtractor is the single entry point the ingestion pipeline uses to
# turn raw upload bytes into text.  It resolves the declared MIME type to
# a closed MediaKind once, then dispatches to the matching processor:
#
#   PDF           → PDFProcessor          (render pages + OCR)
#   WORD          → WordProcessor         (python-docx, LibreOffice)
#   SPREADSHEET   → SpreadsheetProcessor  (pandas read_excel)
#   PRESENTATION  → PresentationProcessor (structure → XML → LibreOffice)
#   HTML          → HTMLProcessor         (BeautifulSoup)
#   DELIMITED     → DelimitedTextProcessor(pandas read_csv)
#   PLAIN         → PlainTextProcessor    (UTF-8 decode)
#   IMAGE         → ImageProcessor        (preprocess + OCR)
#
# When the primary processor raises or returns only whitespace, the
# raw-text fallback decodes the bytes directly if they look like text.
# Unknown text/* types skip straight to that fallback.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Protocol

import structlog

from src.config.settings import Settings
from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractedText, ExtractionMetadata
from src.services.extraction.media_kinds import (
    MediaKind,
    is_supported,
    is_text_like,
    normalize_media_type,
    resolve_media_kind,
)
from src.services.extraction.office_converter import OfficeConverter
from src.services.extraction.processors import (
    DelimitedTextProcessor,
    HTMLProcessor,
    ImageProcessor,
    PDFProcessor,
    PlainTextProcessor,
    PresentationProcessor,
    SpreadsheetProcessor,
    WordProcessor,
)
from src.utils.errors import ConfigurationError, ExtractionFailedError, UnsupportedFormatError
from src.utils.image_preprocessor import ImagePreprocessor

logger = structlog.get_logger(logger_name=__name__)

_SNIFF_BYTES = 8192
_MIN_PRINTABLE_RATIO = 0.85
_RAW_METHOD = "raw-text-fallback"


class _Processor(Protocol):
    async def extract(self, data: bytes, media_type: str) -> ExtractedText: ...


class TextExtractor:
    """Extracts plain text from upload bytes based on their declared MIME type.

    Parameters
    ----------
    ocr_provider:
        OCR engine for PDFs and images.
    preprocessor:
        Image enhancement applied before OCR of low-resolution images.
    settings:
        Extraction tuning (page limits, DPI, presentation thresholds).
    office_converter:
        LibreOffice bridge used by the Word and presentation fallbacks.
    """

    def __init__(
        self,
        ocr_provider: IOCRProvider,
        preprocessor: ImagePreprocessor | None = None,
        settings: Settings | None = None,
        office_converter: OfficeConverter | None = None,
    ) -> None:
        settings = settings or Settings()
        preprocessor = preprocessor or ImagePreprocessor(
            min_width=settings.ocr_min_width,
            target_height=settings.ocr_target_height,
        )
        converter = office_converter or OfficeConverter()

        self._strategies: dict[MediaKind, _Processor] = {
            MediaKind.PDF: PDFProcessor(
                ocr_provider,
                max_pages=settings.pdf_max_pages,
                dpi=settings.pdf_render_dpi,
            ),
            MediaKind.WORD: WordProcessor(converter),
            MediaKind.SPREADSHEET: SpreadsheetProcessor(),
            MediaKind.PRESENTATION: PresentationProcessor(
                converter,
                min_chars=settings.presentation_min_chars,
                max_depth=settings.structure_max_depth,
            ),
            MediaKind.HTML: HTMLProcessor(),
            MediaKind.DELIMITED: DelimitedTextProcessor(),
            MediaKind.PLAIN: PlainTextProcessor(),
            MediaKind.IMAGE: ImageProcessor(ocr_provider, preprocessor),
        }

        missing = [kind.value for kind in MediaKind if kind not in self._strategies]
        if missing:
            raise ConfigurationError(f"No extraction strategy registered for: {', '.join(missing)}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def is_supported(media_type: str | None) -> bool:
        return is_supported(media_type)

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        """Extract text from *data*.

        Raises
        ------
        UnsupportedFormatError
            The type is unknown and the bytes do not decode as text.
        ExtractionFailedError
            The type is known, its strategy failed, and the raw-text
            fallback found nothing either.
        """
        normalized = normalize_media_type(media_type)
        kind = resolve_media_kind(normalized)

        if kind is None:
            fallback = self._raw_text_fallback(data, normalized)
            if fallback is None:
                raise UnsupportedFormatError(f"Unsupported file type: {media_type or 'unknown'}")
            logger.info("extraction_raw_fallback", media_type=normalized, reason="unknown_type")
            return self._finalize(fallback)

        processor = self._strategies[kind]
        try:
            primary = await processor.extract(data, normalized)
        except Exception as exc:
            logger.warning(
                "extraction_strategy_failed",
                media_type=normalized,
                kind=kind.value,
                error=str(exc),
            )
            fallback = self._raw_text_fallback(data, normalized)
            if fallback is None:
                raise ExtractionFailedError(
                    f"Could not extract text from {kind.value} file: {exc}"
                ) from exc
            logger.info("extraction_raw_fallback", media_type=normalized, reason="strategy_failed")
            return self._finalize(fallback)

        if primary.is_blank:
            fallback = self._raw_text_fallback(data, normalized)
            if fallback is not None:
                logger.info("extraction_raw_fallback", media_type=normalized, reason="blank_content")
                return self._finalize(fallback)

        result = self._finalize(primary)
        logger.info(
            "text_extracted",
            media_type=normalized,
            method=result.metadata.method,
            words=result.metadata.word_count,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _raw_text_fallback(data: bytes, media_type: str) -> ExtractedText | None:
        """Decode *data* directly when it looks like text, else return ``None``."""
        if is_text_like(media_type):
            text = data.decode("utf-8", errors="replace")
        else:
            if b"\x00" in data[:_SNIFF_BYTES]:
                return None
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError:
                candidate = data.decode("latin-1")
                if _printable_ratio(candidate) < _MIN_PRINTABLE_RATIO:
                    return None
                text = candidate

        if not text.strip():
            return None
        return ExtractedText(content=text, metadata=ExtractionMetadata(method=_RAW_METHOD))

    @staticmethod
    def _finalize(result: ExtractedText) -> ExtractedText:
        metadata = result.metadata.model_copy(update={"word_count": len(result.content.split())})
        return result.model_copy(update={"metadata": metadata})


def _printable_ratio(text: str) -> float:
    if not text:
        return 0.0
    printable = sum(1 for ch in text if ch.isprintable() or ch in "\t\n\r")
    return printable / len(text)
