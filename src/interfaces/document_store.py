"""Abstract base class for the durable relational store.

The store is the source of truth for documents, chunks (with embeddings)
and processing status.  The in-memory hybrid index is a cache rebuilt
from :meth:`IDocumentStore.iter_embedded_chunks` at process start.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from src.models.document import Document, ProcessingStatus
from src.models.rag import Chunk


# Concrete implementations: SQLiteDocumentStore
# Located in: src/providers/store/
class IDocumentStore(ABC):
    """Contract for persisting documents, chunks and processing status."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    @abstractmethod
    async def save_document(self, document: Document) -> None:
        """Insert or replace a document row (including its status)."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document, or ``None`` when unknown."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> None:
        """Delete a document and all of its chunks.  Unknown ids are a no-op."""

    @abstractmethod
    async def update_status(self, document_id: str, status: ProcessingStatus) -> None:
        """Persist a new processing status for a document."""

    @abstractmethod
    async def save_extracted_text(self, document_id: str, text: str) -> None:
        """Store the raw extracted text alongside the document."""

    @abstractmethod
    async def add_chunks(self, chunks: list[Chunk]) -> int:
        """Upsert chunks (with embeddings when present).  Returns the number written."""

    @abstractmethod
    async def delete_chunks(self, document_id: str) -> int:
        """Delete every chunk of a document.  Returns the number deleted."""

    @abstractmethod
    async def get_chunks(self, document_id: str) -> list[Chunk]:
        """Return a document's chunks ordered by ``chunk_index``."""

    @abstractmethod
    def iter_embedded_chunks(self, batch_size: int = 500) -> AsyncIterator[tuple[Chunk, str]]:
        """Stream ``(chunk, filename)`` pairs for chunks that have an embedding.

        The ``embedding IS NOT NULL`` filter must be applied in the query
        itself so large corpora are never fully loaded into memory.
        """

    @abstractmethod
    async def search_extracted_text(
        self,
        tenant_id: str,
        terms: list[str],
        file_ids: list[str] | None = None,
        limit: int = 10,
    ) -> list[Document]:
        """Return the tenant's completed documents whose text contains any of *terms*.

        Matching is a case-insensitive substring test over the stored
        extracted text.  Only documents that still have persisted chunks
        are returned, so removed documents never match.  ``file_ids``
        restricts the candidates; an empty list matches nothing.
        """

    @abstractmethod
    async def count_by_state(self, tenant_id: str | None = None) -> dict[str, int]:
        """Return ``{state: count}`` for documents, optionally for one tenant."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""
