"""Formats ranked search results into the context block handed to the LLM."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from src.models.rag import SearchResult

CONTEXT_HEADER = "RELEVANT DOCUMENT CONTENT:"


class ContextAssembler:
    """Builds a numbered, citation-bearing context string from search results.

    Output shape::

        RELEVANT DOCUMENT CONTENT:

        1. From "q3-report.pdf" (similarity: 82.4%):
        <chunk text>

        2. From ...
    """

    def __init__(self, max_results: int = 5) -> None:
        self._max_results = max_results

    def assemble(self, results: Sequence[SearchResult]) -> str:
        selected = list(results)[: self._max_results]
        if not selected:
            return ""

        parts = [CONTEXT_HEADER, ""]
        for number, result in enumerate(selected, start=1):
            parts.append(f'{number}. From "{result.filename}" (similarity: {result.similarity * 100:.1f}%):')
            parts.append(result.chunk.content.strip())
            parts.append("")
        return "\n".join(parts)

    def citations(self, results: Sequence[SearchResult]) -> list[dict[str, Any]]:
        """Source references for the same results :meth:`assemble` includes."""
        return [
            {
                "document_id": result.document_id,
                "filename": result.filename,
                "chunk_id": result.chunk.chunk_id,
                "similarity": round(result.similarity, 4),
            }
            for result in list(results)[: self._max_results]
        ]
