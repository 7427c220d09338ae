"""Retrieval data models: chunks, search results and index statistics.

Defines Pydantic v2 models for the unit of retrieval (:class:`Chunk`), the
ranked handoff to the LLM layer (:class:`SearchResult`), and index
statistics.  All models use frozen config.

Retrieval overview:

    1. INGESTION: an uploaded document's text is split into overlapping
       word windows (src/services/ingestion/chunker.py).
    2. EMBEDDING: each chunk gets a dense vector
       (src/services/ingestion/embedding_generator.py).
    3. INDEXING: chunks are persisted to the relational store and loaded
       into the in-memory :class:`~src.services.retrieval.hybrid_index.HybridIndex`.
    4. RETRIEVAL: a chat query is matched by vector similarity and keyword
       overlap, fused into one ranking, and filtered by the lexical gate.
    5. GENERATION: the top results become citation-bearing context
       (src/services/retrieval/context_assembler.py).

Tenant isolation: every chunk carries the ``tenant_id`` of its document,
and every read path filters on it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChunkPosition(BaseModel):
    """Word-offset range a chunk covers within its document's text."""

    model_config = ConfigDict(frozen=True)

    start_word: int = Field(ge=0, description="Offset of the first word (inclusive).")
    end_word: int = Field(ge=0, description="Offset one past the last word (exclusive).")
    word_count: int = Field(ge=0)


class Chunk(BaseModel):
    """A bounded, overlapping slice of a document's extracted text.

    ``chunk_id`` is derived from the document id and the chunk index, so
    re-chunking identical text produces identical ids and reprocessing
    replaces chunks instead of appending them.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Deterministic id: '{document_id}-chunk-{chunk_index}'.")
    document_id: str = Field(description="Parent document identifier.")
    tenant_id: str = Field(description="Owning tenant; always equal to the document's tenant.")
    content: str = Field(description="The chunk text.")
    chunk_index: int = Field(ge=0, description="Zero-based order within the document.")
    embedding: list[float] | None = Field(default=None, description="Dense vector, when embedded.")
    position: ChunkPosition | None = Field(default=None)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk content must not be empty")
        return value

    @staticmethod
    def make_id(document_id: str, chunk_index: int) -> str:
        return f"{document_id}-chunk-{chunk_index}"

    def with_embedding(self, embedding: list[float] | None) -> Chunk:
        return self.model_copy(update={"embedding": embedding})

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class SearchResult(BaseModel):
    """A chunk returned by hybrid search.

    ``similarity`` is the raw cosine similarity (0.0 for chunks that only
    matched lexically); ``relevance_score`` is the fused ranking key.
    """

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    filename: str = Field(default="", description="Source filename for citations.")
    similarity: float = Field(default=0.0, ge=-1.0, le=1.0)
    relevance_score: float = Field(default=0.0)

    @property
    def document_id(self) -> str:
        return self.chunk.document_id


class IndexStats(BaseModel):
    """Summary of the hybrid index contents."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    total_documents: int = Field(default=0, ge=0)
    total_tenants: int = Field(default=0, ge=0)
    embedded_chunks: int = Field(default=0, ge=0, description="Chunks participating in vector search.")
    keyword_count: int = Field(default=0, ge=0, description="Distinct terms in the inverted index.")
    avg_chunk_chars: float = Field(default=0.0, ge=0.0)
    approx_storage_bytes: int = Field(
        default=0,
        ge=0,
        description="Content characters plus 4 bytes per embedding dimension.",
    )
