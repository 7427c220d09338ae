"""Domain models: re-exports all public model classes.

The models are organized across three submodules by concern:
    - document.py  : Document lifecycle and processing state machine
    - extraction.py: Extracted text and OCR page results
    - rag.py       : Chunks, search results and index statistics

If you add a new model class, remember to add it to ``__all__`` too.
"""

from __future__ import annotations

from src.models.document import (
    STAGE_PROGRESS,
    Document,
    ProcessingResult,
    ProcessingStage,
    ProcessingState,
    ProcessingStats,
    ProcessingStatus,
)
from src.models.extraction import ExtractedText, ExtractionMetadata, OCRPage
from src.models.rag import Chunk, ChunkPosition, IndexStats, SearchResult

__all__ = [
    "STAGE_PROGRESS",
    "Chunk",
    "ChunkPosition",
    "Document",
    "ExtractedText",
    "ExtractionMetadata",
    "IndexStats",
    "OCRPage",
    "ProcessingResult",
    "ProcessingStage",
    "ProcessingState",
    "ProcessingStats",
    "ProcessingStatus",
    "SearchResult",
]
