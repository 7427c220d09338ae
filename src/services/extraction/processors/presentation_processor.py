"""Presentation extraction with a three-step fallback chain.

Slide text often lives outside the title/body placeholders: floating text
boxes, grouped shapes, and table cells.  Strategies are tried in strict
order, and the first whose text reaches ``min_chars`` wins:

    1. structure  : python-pptx loads the deck; each slide is converted to
                    a nested tree (shapes, groups, paragraphs, table cells,
                    notes) and every string leaf is collected with
                    :func:`~src.utils.tree_walk.collect_string_leaves`
    2. xml-scrape : slide parts (``ppt/slides/slideN.xml``) are read
                    straight from the ZIP container and every ``<a:t>``
                    run is scraped with a regex
    3. convert    : LibreOffice converts the deck (including legacy
                    ``.ppt``) and its text is read back

Sufficiency is measured on the collected text itself, not on the slide
markers added around it.
"""

from __future__ import annotations

import asyncio
import html
import io
import re
import zipfile
from dataclasses import dataclass
from typing import Any

import structlog
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE

from src.models.extraction import ExtractedText, ExtractionMetadata
from src.services.extraction.media_kinds import suffix_for
from src.services.extraction.office_converter import OfficeConverter
from src.utils.errors import ExtractionFailedError
from src.utils.tree_walk import collect_string_leaves

logger = structlog.get_logger(logger_name=__name__)

_ZIP_SIGNATURE = b"PK\x03\x04"
_SLIDE_PART = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
_TEXT_RUN = re.compile(r"<a:t(?:\s[^>]*)?>(.*?)</a:t>", re.DOTALL)


@dataclass
class _Attempt:
    """Text gathered by one strategy before the sufficiency check."""

    content: str
    text_chars: int
    slide_count: int
    includes_notes: bool = False


class PresentationProcessor:
    """Extracts slide text from ``.pptx`` (and, via LibreOffice, ``.ppt``).

    Parameters
    ----------
    office_converter:
        Final fallback for decks neither parser can read.
    min_chars:
        Minimum characters of real text a strategy must produce.
    max_depth:
        Bound on shape-group nesting and on the tree walk.
    """

    def __init__(self, office_converter: OfficeConverter, min_chars: int = 10, max_depth: int = 32) -> None:
        self._converter = office_converter
        self._min_chars = min_chars
        self._max_depth = max_depth

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        strategies = (
            ("pptx-structure", self._extract_structured),
            ("pptx-xml-scrape", self._extract_xml_runs),
            ("office-convert", self._extract_converted),
        )

        failures: list[str] = []
        for method, strategy in strategies:
            try:
                attempt = await strategy(data, media_type)
            except Exception as exc:
                logger.info("presentation_strategy_failed", method=method, error=str(exc))
                failures.append(f"{method}: {exc}")
                continue

            if attempt.text_chars >= self._min_chars:
                logger.info(
                    "presentation_processed",
                    method=method,
                    slides=attempt.slide_count,
                    characters=attempt.text_chars,
                )
                return ExtractedText(
                    content=attempt.content,
                    metadata=ExtractionMetadata(
                        method=method,
                        page_count=attempt.slide_count or None,
                        includes_notes=attempt.includes_notes,
                    ),
                )

            logger.info(
                "presentation_strategy_insufficient",
                method=method,
                characters=attempt.text_chars,
                min_chars=self._min_chars,
            )
            failures.append(f"{method}: only {attempt.text_chars} characters")

        raise ExtractionFailedError(
            "All presentation strategies failed (" + "; ".join(failures) + ")"
        )

    # ------------------------------------------------------------------
    # Strategy 1: structural walk
    # ------------------------------------------------------------------

    async def _extract_structured(self, data: bytes, media_type: str) -> _Attempt:
        return await asyncio.to_thread(self._walk_slides, data)

    def _walk_slides(self, data: bytes) -> _Attempt:
        deck = Presentation(io.BytesIO(data))
        sections: list[str] = []
        text_chars = 0
        includes_notes = False
        slide_count = 0

        for number, slide in enumerate(deck.slides, start=1):
            slide_count = number
            tree = {"shapes": [self._shape_tree(shape, 0) for shape in slide.shapes]}
            leaves = collect_string_leaves(tree, max_depth=self._max_depth)

            notes = ""
            if slide.has_notes_slide and slide.notes_slide.notes_text_frame is not None:
                notes = slide.notes_slide.notes_text_frame.text.strip()

            if not leaves and not notes:
                continue
            block = [f"--- Slide {number} ---", *leaves]
            if notes:
                block.append(f"Notes: {notes}")
                includes_notes = True
            sections.append("\n".join(block))
            text_chars += sum(len(leaf) for leaf in leaves) + len(notes)

        return _Attempt(
            content="\n\n".join(sections),
            text_chars=text_chars,
            slide_count=slide_count,
            includes_notes=includes_notes,
        )

    def _shape_tree(self, shape: Any, depth: int) -> dict[str, Any]:
        """Convert a shape into plain dicts/lists holding only its text."""
        node: dict[str, Any] = {}
        if depth >= self._max_depth:
            return node

        if shape.shape_type == MSO_SHAPE_TYPE.GROUP:
            node["shapes"] = [self._shape_tree(child, depth + 1) for child in shape.shapes]
        if shape.has_text_frame:
            node["paragraphs"] = [p.text for p in shape.text_frame.paragraphs]
        if shape.has_table:
            node["rows"] = [[cell.text for cell in row.cells] for row in shape.table.rows]
        return node

    # ------------------------------------------------------------------
    # Strategy 2: raw XML scrape
    # ------------------------------------------------------------------

    async def _extract_xml_runs(self, data: bytes, media_type: str) -> _Attempt:
        if not data.startswith(_ZIP_SIGNATURE):
            raise ExtractionFailedError("Not a ZIP-based presentation")
        return await asyncio.to_thread(self._scrape_slide_xml, data)

    @staticmethod
    def _scrape_slide_xml(data: bytes) -> _Attempt:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            slide_parts: list[tuple[int, str]] = []
            for name in archive.namelist():
                match = _SLIDE_PART.match(name)
                if match:
                    slide_parts.append((int(match.group(1)), name))
            slide_parts.sort()

            sections: list[str] = []
            text_chars = 0
            for number, name in slide_parts:
                xml = archive.read(name).decode("utf-8", errors="replace")
                runs = [html.unescape(r).strip() for r in _TEXT_RUN.findall(xml)]
                runs = [r for r in runs if r]
                if runs:
                    sections.append("\n".join([f"--- Slide {number} ---", *runs]))
                    text_chars += sum(len(r) for r in runs)

        return _Attempt(
            content="\n\n".join(sections),
            text_chars=text_chars,
            slide_count=len(slide_parts),
        )

    # ------------------------------------------------------------------
    # Strategy 3: LibreOffice conversion
    # ------------------------------------------------------------------

    async def _extract_converted(self, data: bytes, media_type: str) -> _Attempt:
        text = (await self._converter.convert_to_text(data, suffix_for(media_type))).strip()
        return _Attempt(content=text, text_chars=len(text), slide_count=0)
