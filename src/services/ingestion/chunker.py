"""Sliding-window text chunking over whitespace-delimited words.

Splits extracted document text into :class:`~src.models.rag.Chunk` objects
of at most ``max_words`` words.  Consecutive windows share
``overlap_words`` words so that a passage straddling a boundary is fully
contained in at least one chunk.

The algorithm is deterministic: identical text always produces identical
boundaries and identical chunk ids (``{document_id}-chunk-{index}``), which
is what makes reprocessing an idempotent replace.

Example with ``max_words=4, overlap_words=1`` over 10 words::

    window 0: words[0:4]
    window 1: words[3:7]
    window 2: words[6:10]   <- reaches the end, stop

The loop stops at the first window that reaches the last word, so a
trailing window made only of already-covered overlap words is never
emitted.  For ``n`` words the chunk count is therefore
``1 + ceil(max(0, n - max_words) / step)``.
"""

from __future__ import annotations

import structlog

from src.models.rag import Chunk, ChunkPosition
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class TextChunker:
    """Splits text into overlapping word windows.

    Parameters
    ----------
    max_words:
        Maximum words per chunk (default 750, roughly 1000 tokens).
    overlap_words:
        Words shared by consecutive chunks (default 150).  Must be strictly
        less than ``max_words``, otherwise the window never advances.

    Raises
    ------
    ConfigurationError
        If the window parameters cannot terminate.
    """

    def __init__(self, max_words: int = 750, overlap_words: int = 150) -> None:
        if max_words < 1:
            raise ConfigurationError(f"max_words must be at least 1, got {max_words}")
        if not 0 <= overlap_words < max_words:
            raise ConfigurationError(
                f"overlap_words must be in [0, {max_words}), got {overlap_words}"
            )
        self._max_words = max_words
        self._overlap_words = overlap_words

    @property
    def max_words(self) -> int:
        return self._max_words

    @property
    def overlap_words(self) -> int:
        return self._overlap_words

    @property
    def step(self) -> int:
        return self._max_words - self._overlap_words

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, document_id: str, tenant_id: str) -> list[Chunk]:
        """Split *text* into ordered, overlapping chunks.

        Parameters
        ----------
        text:
            Extracted document text.
        document_id:
            Parent document id; also the prefix of every chunk id.
        tenant_id:
            Owning tenant, copied onto every chunk.

        Returns
        -------
        list[Chunk]
            Chunks with ``chunk_index`` counting up from 0.  Empty or
            whitespace-only input returns an empty list.
        """
        words = text.split() if text else []
        if not words:
            return []

        chunks: list[Chunk] = []
        total = len(words)
        for start in range(0, total, self.step):
            window = words[start : start + self._max_words]
            if window:
                index = len(chunks)
                chunks.append(
                    Chunk(
                        chunk_id=Chunk.make_id(document_id, index),
                        document_id=document_id,
                        tenant_id=tenant_id,
                        content=" ".join(window),
                        chunk_index=index,
                        position=ChunkPosition(
                            start_word=start,
                            end_word=start + len(window),
                            word_count=len(window),
                        ),
                    )
                )
            if start + self._max_words >= total:
                break

        logger.debug(
            "chunking_complete",
            document_id=document_id,
            word_count=total,
            num_chunks=len(chunks),
            max_words=self._max_words,
            overlap_words=self._overlap_words,
        )
        return chunks
