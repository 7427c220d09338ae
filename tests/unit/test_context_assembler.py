"""Unit tests for ContextAssembler output formatting and citations."""

from __future__ import annotations

from src.models.rag import SearchResult
from src.services.retrieval.context_assembler import CONTEXT_HEADER, ContextAssembler
from tests.conftest import make_chunk


def _make_result(content: str, filename: str, similarity: float, index: int = 0) -> SearchResult:
    return SearchResult(
        chunk=make_chunk(content, document_id=f"doc-{filename}", index=index),
        filename=filename,
        similarity=similarity,
        relevance_score=similarity * 0.7,
    )


class TestAssemble:
    def test_numbered_blocks_with_similarity(self) -> None:
        results = [
            _make_result("  Revenue grew 12%.  ", "q3.pdf", 0.824),
            _make_result("Costs were flat.", "costs.xlsx", 0.5),
        ]

        context = ContextAssembler().assemble(results)

        assert context == "\n".join(
            [
                CONTEXT_HEADER,
                "",
                '1. From "q3.pdf" (similarity: 82.4%):',
                "Revenue grew 12%.",
                "",
                '2. From "costs.xlsx" (similarity: 50.0%):',
                "Costs were flat.",
                "",
            ]
        )

    def test_respects_max_results(self) -> None:
        results = [_make_result(f"text {i}", f"f{i}.txt", 0.9) for i in range(4)]

        context = ContextAssembler(max_results=2).assemble(results)

        assert '2. From "f1.txt"' in context
        assert "f2.txt" not in context

    def test_no_results_is_empty_string(self) -> None:
        assert ContextAssembler().assemble([]) == ""

    def test_keyword_only_result_shows_zero_similarity(self) -> None:
        context = ContextAssembler().assemble([_make_result("lexical hit", "a.txt", 0.0)])

        assert "(similarity: 0.0%)" in context


class TestCitations:
    def test_citation_fields(self) -> None:
        result = _make_result("Revenue grew.", "q3.pdf", 0.123456)

        assert ContextAssembler().citations([result]) == [
            {
                "document_id": "doc-q3.pdf",
                "filename": "q3.pdf",
                "chunk_id": "doc-q3.pdf-chunk-0",
                "similarity": 0.1235,
            }
        ]

    def test_citations_match_assembled_results(self) -> None:
        results = [_make_result(f"text {i}", f"f{i}.txt", 0.9) for i in range(7)]

        assert len(ContextAssembler(max_results=5).citations(results)) == 5
