"""Word document extraction (python-docx, LibreOffice fallback)."""

from __future__ import annotations

import asyncio
import io

import structlog
from docx import Document as DocxDocument

from src.models.extraction import ExtractedText, ExtractionMetadata
from src.services.extraction.media_kinds import suffix_for
from src.services.extraction.office_converter import OfficeConverter

logger = structlog.get_logger(logger_name=__name__)


class WordProcessor:
    """Reads paragraphs and table cells from ``.docx`` files.

    Legacy ``.doc`` files (and ``.docx`` files python-docx rejects) are
    converted with LibreOffice instead.
    """

    def __init__(self, office_converter: OfficeConverter) -> None:
        self._converter = office_converter

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        try:
            content = await asyncio.to_thread(self._read_docx, data)
            method = "docx"
        except Exception as exc:
            logger.info("docx_parse_failed_trying_libreoffice", media_type=media_type, error=str(exc))
            content = await self._converter.convert_to_text(data, suffix_for(media_type))
            method = "office-convert"

        return ExtractedText(content=content, metadata=ExtractionMetadata(method=method))

    @staticmethod
    def _read_docx(data: bytes) -> str:
        doc = DocxDocument(io.BytesIO(data))
        blocks = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))
        return "\n\n".join(blocks)
