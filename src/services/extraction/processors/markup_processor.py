"""HTML and plain-text extraction."""

from __future__ import annotations

import asyncio

from bs4 import BeautifulSoup

from src.models.extraction import ExtractedText, ExtractionMetadata

_NON_CONTENT_TAGS = ("script", "style", "noscript", "template")


class HTMLProcessor:
    """Extracts visible text from HTML, dropping scripts and styles."""

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        content = await asyncio.to_thread(self._visible_text, data)
        return ExtractedText(content=content, metadata=ExtractionMetadata(method="html"))

    @staticmethod
    def _visible_text(data: bytes) -> str:
        soup = BeautifulSoup(data, "html.parser")
        for tag in soup(_NON_CONTENT_TAGS):
            tag.decompose()
        lines = (" ".join(line.split()) for line in soup.get_text(separator="\n").splitlines())
        return "\n".join(line for line in lines if line)


class PlainTextProcessor:
    """Decodes text, markdown, JSON and XML uploads as UTF-8."""

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        # utf-8-sig drops a leading BOM that Windows editors like to add.
        content = data.decode("utf-8-sig", errors="replace")
        return ExtractedText(content=content, metadata=ExtractionMetadata(method="plain-text"))
