"""PDF extraction by rendering pages to images and running OCR.

Every page is rendered with PyMuPDF (fitz) and recognised by the injected
:class:`~src.interfaces.ocr_provider.IOCRProvider`, so scanned documents
without a text layer are handled the same way as born-digital ones.

Rendering stops at ``max_pages`` or at the first page that cannot be
produced.  A page that fails to render is treated as the end of the
document, not as an error.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from src.interfaces.ocr_provider import IOCRProvider
from src.models.extraction import ExtractedText, ExtractionMetadata
from src.utils.errors import ExtractionFailedError

logger = structlog.get_logger(logger_name=__name__)


class PDFProcessor:
    """Renders PDF pages and OCRs each one.

    Parameters
    ----------
    ocr_provider:
        Engine used to recognise each rendered page.
    max_pages:
        Upper bound on pages rendered per document.
    dpi:
        Render resolution; 200 dpi gives Tesseract roughly 30px glyphs for
        body text.
    """

    def __init__(self, ocr_provider: IOCRProvider, max_pages: int = 50, dpi: int = 200) -> None:
        self._ocr = ocr_provider
        self._max_pages = max_pages
        self._dpi = dpi

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        try:
            doc = await asyncio.to_thread(fitz.open, stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionFailedError(f"Cannot open PDF: {exc}", provider_name="pymupdf") from exc

        page_texts: list[str] = []
        confidences: list[float] = []
        rendered = 0
        try:
            for page_index in range(self._max_pages):
                try:
                    png = await asyncio.to_thread(self._render_page, doc, page_index)
                except (IndexError, ValueError, RuntimeError) as exc:
                    # End of document (or an unrenderable trailing page).
                    logger.debug("pdf_render_stopped", page=page_index + 1, reason=str(exc))
                    break
                rendered += 1

                page = await self._ocr.extract_text(png)
                if page.text.strip():
                    page_texts.append(f"--- Page {page_index + 1} ---\n{page.text.strip()}")
                    confidences.append(page.confidence)
        finally:
            doc.close()

        if not page_texts:
            raise ExtractionFailedError(
                f"No text recognised on any of {rendered} rendered PDF pages",
                provider_name=self._ocr.get_provider_name(),
            )

        content = "\n\n".join(page_texts)
        logger.info(
            "pdf_processed",
            pages_rendered=rendered,
            pages_with_text=len(page_texts),
            characters=len(content),
        )
        return ExtractedText(
            content=content,
            metadata=ExtractionMetadata(
                method="pdf-render-ocr",
                confidence=sum(confidences) / len(confidences),
                page_count=rendered,
            ),
        )

    def _render_page(self, doc: fitz.Document, page_index: int) -> bytes:
        if page_index >= doc.page_count:
            raise IndexError(f"page {page_index + 1} is past the end of the document")
        page = doc.load_page(page_index)
        return page.get_pixmap(dpi=self._dpi).tobytes("png")
