"""Unit tests for the TextChunker: fixed-size overlapping word windows."""

from __future__ import annotations

import math

import pytest

from src.services.ingestion.chunker import TextChunker
from src.utils.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_chunker(max_words: int = 4, overlap_words: int = 1) -> TextChunker:
    """Build a TextChunker with a predictable configuration."""
    return TextChunker(max_words=max_words, overlap_words=overlap_words)


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestWindowing:
    def test_ten_words_four_by_one(self) -> None:
        chunks = _make_chunker(4, 1).chunk(_words(10), "doc", "tenant")

        assert [c.content for c in chunks] == [
            "w0 w1 w2 w3",
            "w3 w4 w5 w6",
            "w6 w7 w8 w9",
        ]
        assert [c.chunk_index for c in chunks] == [0, 1, 2]

    def test_consecutive_chunks_share_overlap_words(self) -> None:
        chunks = _make_chunker(10, 3).chunk(_words(47), "doc", "tenant")

        for prev, nxt in zip(chunks, chunks[1:]):
            assert prev.content.split()[-3:] == nxt.content.split()[:3]

    def test_no_chunk_exceeds_max_words(self) -> None:
        chunks = _make_chunker(10, 3).chunk(_words(47), "doc", "tenant")

        assert all(len(c.content.split()) <= 10 for c in chunks)

    def test_every_word_is_covered(self) -> None:
        text = _words(47)
        chunks = _make_chunker(10, 3).chunk(text, "doc", "tenant")

        covered = set()
        for chunk in chunks:
            covered.update(chunk.content.split())
        assert covered == set(text.split())

    def test_final_partial_window_is_emitted(self) -> None:
        chunks = _make_chunker(750, 150).chunk(_words(1000), "doc", "tenant")

        assert len(chunks) == 2
        assert chunks[1].position is not None
        assert chunks[1].position.start_word == 600
        assert chunks[1].position.word_count == 400

    def test_no_trailing_window_of_overlap_words_only(self) -> None:
        chunks = _make_chunker(750, 150).chunk(_words(1350), "doc", "tenant")

        assert len(chunks) == 2
        assert chunks[-1].position is not None
        assert chunks[-1].position.end_word == 1350

    @pytest.mark.parametrize("n", [1, 4, 5, 7, 8, 10, 11, 30])
    def test_chunk_count_formula(self, n: int) -> None:
        chunks = _make_chunker(4, 1).chunk(_words(n), "doc", "tenant")

        assert len(chunks) == 1 + math.ceil(max(0, n - 4) / 3)

    def test_short_text_is_a_single_chunk(self) -> None:
        chunks = _make_chunker(750, 150).chunk("just a few words", "doc", "tenant")

        assert len(chunks) == 1
        assert chunks[0].content == "just a few words"

    def test_positions_record_word_offsets(self) -> None:
        chunks = _make_chunker(4, 1).chunk(_words(10), "doc", "tenant")

        assert [(c.position.start_word, c.position.end_word) for c in chunks] == [(0, 4), (3, 7), (6, 10)]

    def test_zero_overlap_partitions_text(self) -> None:
        chunks = _make_chunker(5, 0).chunk(_words(12), "doc", "tenant")

        assert [len(c.content.split()) for c in chunks] == [5, 5, 2]


class TestIdentity:
    def test_chunk_ids_are_deterministic(self) -> None:
        chunker = _make_chunker(4, 1)
        first = chunker.chunk(_words(10), "doc-9", "tenant")
        second = chunker.chunk(_words(10), "doc-9", "tenant")

        assert [c.chunk_id for c in first] == ["doc-9-chunk-0", "doc-9-chunk-1", "doc-9-chunk-2"]
        assert first == second

    def test_tenant_is_copied_to_every_chunk(self) -> None:
        chunks = _make_chunker(4, 1).chunk(_words(10), "doc", "tenant-x")

        assert {c.tenant_id for c in chunks} == {"tenant-x"}
        assert {c.document_id for c in chunks} == {"doc"}

    def test_whitespace_is_normalised(self) -> None:
        chunks = _make_chunker(4, 0).chunk("alpha\n\n beta\tgamma   delta", "doc", "tenant")

        assert chunks[0].content == "alpha beta gamma delta"


class TestEmptyInput:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_blank_text_produces_no_chunks(self, text: str) -> None:
        assert _make_chunker().chunk(text, "doc", "tenant") == []


class TestConfiguration:
    @pytest.mark.parametrize(("max_words", "overlap"), [(4, 4), (4, 5), (4, -1), (0, 0)])
    def test_invalid_window_is_rejected(self, max_words: int, overlap: int) -> None:
        with pytest.raises(ConfigurationError):
            TextChunker(max_words=max_words, overlap_words=overlap)

    def test_step_is_window_minus_overlap(self) -> None:
        assert TextChunker(750, 150).step == 600
