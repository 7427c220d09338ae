"""Central orchestrator for the document ingestion pipeline.

Drives one uploaded document through extract → chunk → embed → persist +
index, publishing a :class:`~src.models.document.ProcessingStatus` at
every stage boundary through the injected
:class:`~src.pipeline.status_tracker.StatusTracker` and the durable store.

ARCHITECTURE NOTE:
    Every collaborator is injected, so tests can swap any of them for a
    fake.  The orchestrator itself only tracks the current run token of
    each in-flight document and how many runs of it are still executing.

    Run tokens make removal and reprocessing safe while a run is still
    executing:

        - ``process_document`` registers a fresh token before it starts.
          Starting another run for the same document replaces the token,
          which marks the older run as *superseded*.
        - ``remove_document_processing`` deletes the token, which marks
          any in-flight run as *removed*.
        - Between stages, and once more right before ``completed`` is
          published, the run checks its token.  A removed run rolls back
          the index entries and chunks it wrote; a superseded run simply
          stops, because the newer run owns the document now.

    Failures never escape ``process_document``: every exception becomes a
    ``failed`` status whose ``error_code`` is the exception class name.
"""

from __future__ import annotations

import time
import uuid

import structlog

from src.config.settings import Settings
from src.interfaces.document_store import IDocumentStore
from src.interfaces.object_storage import IObjectStorage
from src.models.document import (
    Document,
    ProcessingResult,
    ProcessingStage,
    ProcessingState,
    ProcessingStats,
    ProcessingStatus,
)
from src.models.rag import Chunk
from src.pipeline.status_tracker import StatusTracker
from src.services.extraction.media_kinds import is_supported
from src.services.extraction.text_extractor import TextExtractor
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_generator import EmbeddingGenerator
from src.services.retrieval.hybrid_index import HybridIndex
from src.utils.errors import (
    EmbeddingCountMismatchError,
    EmbeddingUnavailableError,
    NoChunksProducedError,
    NoExtractableContentError,
    RetrievalError,
)
from src.utils.logging import bind_document_context, clear_document_context, get_logger


class _RunCancelled(Exception):
    """Raised inside a run whose token is no longer current."""

    def __init__(self, removed: bool) -> None:
        super().__init__("removed" if removed else "superseded")
        self.removed = removed


class IngestionOrchestrator:
    """Runs documents through the ingestion pipeline and tracks their status.

    Parameters
    ----------
    extractor, chunker, embedder, index:
        The four pipeline stages.
    store:
        Durable store for documents, chunks and statuses.
    object_storage:
        Source of upload bytes when a document is reprocessed.
    tracker:
        In-memory status snapshots with listener callbacks.
    settings:
        Pipeline policy, chiefly ``require_embeddings``.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: TextChunker,
        embedder: EmbeddingGenerator,
        index: HybridIndex,
        store: IDocumentStore,
        object_storage: IObjectStorage,
        tracker: StatusTracker,
        settings: Settings | None = None,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedder = embedder
        self._index = index
        self._store = store
        self._object_storage = object_storage
        self._tracker = tracker
        self._settings = settings or Settings()
        self._runs: dict[str, str] = {}
        self._inflight: dict[str, int] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_document(
        self,
        document: Document,
        data: bytes,
        media_type: str | None = None,
    ) -> ProcessingResult:
        """Extract, chunk, embed and index one document.

        Parameters
        ----------
        document:
            The document being processed; persisted first if the store
            does not know it yet.
        data:
            Raw upload bytes.
        media_type:
            Overrides ``document.media_type`` for extraction.

        Returns
        -------
        ProcessingResult
            Always returned; a failed run carries a ``failed`` status.
        """
        doc_id = document.document_id
        token = uuid.uuid4().hex
        self._runs[doc_id] = token
        self._inflight[doc_id] = self._inflight.get(doc_id, 0) + 1
        start = time.monotonic()
        bind_document_context(doc_id, document.tenant_id)

        status = ProcessingStatus.pending()
        chunks: list[Chunk] = []
        indexed = 0
        lexical_only = False

        try:
            if await self._store.get_document(doc_id) is None:
                await self._store.save_document(
                    document.model_copy(update={"status": status, "byte_length": len(data)})
                )

            # Stage 1: extraction
            status = await self._advance(doc_id, token, ProcessingStage.EXTRACTING)
            extracted = await self._extractor.extract(data, media_type or document.media_type)
            self._checkpoint(doc_id, token)
            await self._store.save_extracted_text(doc_id, extracted.content)
            if extracted.is_blank:
                raise NoExtractableContentError(
                    f"No text could be extracted from {document.filename!r}"
                )

            # Stage 2: chunking
            status = await self._advance(doc_id, token, ProcessingStage.CHUNKING)
            chunks = self._chunker.chunk(extracted.content, doc_id, document.tenant_id)
            if not chunks:
                raise NoChunksProducedError(f"Chunker produced no chunks for {document.filename!r}")

            # Stage 3: embedding
            status = await self._advance(doc_id, token, ProcessingStage.EMBEDDING)
            chunks, lexical_only = await self._embed(chunks)
            self._checkpoint(doc_id, token)

            # Stage 4: persist + index
            status = await self._advance(doc_id, token, ProcessingStage.INDEXING)
            await self._store.add_chunks(chunks)
            indexed = await self._index.add_chunks(chunks, {doc_id: document.filename})

            self._checkpoint(doc_id, token)
            status = ProcessingStatus.completed()
            await self._publish(doc_id, status)

        except _RunCancelled as cancelled:
            return await self._abandon(document, cancelled.removed, start)

        except Exception as exc:
            reason = exc.message if isinstance(exc, RetrievalError) else str(exc)
            status = status.fail(reason or type(exc).__name__, error_code=type(exc).__name__)
            self._logger.warning(
                "document_processing_failed",
                stage=status.stage.value if status.stage else None,
                error_code=status.error_code,
                reason=status.reason,
            )
            if self._is_current(doc_id, token):
                await self._publish_failure(doc_id, status)

        finally:
            self._release(doc_id)
            clear_document_context()

        result = ProcessingResult(
            document_id=doc_id,
            status=status,
            chunk_count=len(chunks),
            indexed_count=indexed,
            lexical_only=lexical_only,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )
        if result.succeeded:
            self._logger.info(
                "document_processed",
                document_id=doc_id,
                chunks=result.chunk_count,
                lexical_only=lexical_only,
                elapsed_seconds=result.elapsed_seconds,
            )
        return result

    async def reprocess_document(self, document_id: str) -> ProcessingResult:
        """Wipe a document's chunks and run it through the pipeline again.

        Source bytes are re-downloaded from object storage.  A missing
        document or storage object yields a failed result rather than an
        exception.
        """
        document = await self._store.get_document(document_id)
        if document is None:
            self._logger.warning("reprocess_unknown_document", document_id=document_id)
            return ProcessingResult(
                document_id=document_id,
                status=ProcessingStatus.pending().fail("Document not found", error_code="DocumentNotFound"),
            )

        # Supersede any in-flight run before its chunks are wiped.
        if document_id in self._inflight:
            self._runs[document_id] = uuid.uuid4().hex
        await self._index.remove_document(document_id)
        await self._store.delete_chunks(document_id)
        pending = ProcessingStatus.pending()
        await self._publish(document_id, pending)

        if not document.storage_path:
            failed = pending.fail("Document has no stored source file", error_code="MissingStoragePath")
            await self._publish_failure(document_id, failed)
            return ProcessingResult(document_id=document_id, status=failed)

        try:
            data = await self._object_storage.download(document.storage_path)
        except RetrievalError as exc:
            failed = pending.fail(exc.message, error_code=type(exc).__name__)
            await self._publish_failure(document_id, failed)
            return ProcessingResult(document_id=document_id, status=failed)

        self._logger.info("document_reprocessing", document_id=document_id, bytes=len(data))
        return await self.process_document(document.model_copy(update={"status": pending}), data)

    async def remove_document_processing(self, document_id: str, delete_persisted: bool = True) -> int:
        """Stop tracking a document and drop it from the index.

        Any in-flight run is invalidated and will roll back what it wrote.
        Safe to call repeatedly.  Returns the number of index entries removed.
        """
        self._runs.pop(document_id, None)
        removed = await self._index.remove_document(document_id)
        deleted = await self._store.delete_chunks(document_id) if delete_persisted else 0
        self._tracker.forget(document_id)
        self._logger.info(
            "document_processing_removed",
            document_id=document_id,
            index_entries=removed,
            persisted_chunks=deleted,
        )
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_processing_status(self, document_id: str) -> ProcessingStatus | None:
        status = self._tracker.get_status(document_id)
        if status is not None:
            return status
        document = await self._store.get_document(document_id)
        return document.status if document is not None else None

    async def get_processing_stats(self, tenant_id: str | None = None) -> ProcessingStats:
        counts = await self._store.count_by_state(tenant_id)
        return ProcessingStats(
            total=sum(counts.values()),
            **{state.value: counts.get(state.value, 0) for state in ProcessingState},
        )

    @staticmethod
    def is_media_type_supported(media_type: str | None) -> bool:
        return is_supported(media_type)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _embed(self, chunks: list[Chunk]) -> tuple[list[Chunk], bool]:
        """Attach embeddings, or fall back to lexical-only indexing."""
        if not self._embedder.is_available():
            if self._settings.require_embeddings:
                raise EmbeddingUnavailableError(
                    "Embeddings are required but no embedding provider is available",
                    provider_name=self._embedder.provider_name,
                )
            self._logger.warning("embeddings_unavailable_indexing_lexical_only", chunks=len(chunks))
            return chunks, True

        vectors = await self._embedder.embed(chunks)
        expected = [c for c in chunks if c.content.strip()]
        missing = [c.chunk_id for c in expected if c.chunk_id not in vectors]
        if len(vectors) != len(expected) or missing:
            raise EmbeddingCountMismatchError(
                f"Expected {len(expected)} embeddings, got {len(vectors)}",
                provider_name=self._embedder.provider_name,
            )
        return [c.with_embedding(vectors.get(c.chunk_id)) for c in chunks], False

    def _release(self, document_id: str) -> None:
        # Older runs still in flight must keep seeing the newer token,
        # otherwise they would read as removed and roll it back.
        remaining = self._inflight.get(document_id, 1) - 1
        if remaining > 0:
            self._inflight[document_id] = remaining
        else:
            self._inflight.pop(document_id, None)
            self._runs.pop(document_id, None)

    def _is_current(self, document_id: str, token: str) -> bool:
        return self._runs.get(document_id) == token

    def _checkpoint(self, document_id: str, token: str) -> None:
        current = self._runs.get(document_id)
        if current != token:
            raise _RunCancelled(removed=current is None)

    async def _advance(self, document_id: str, token: str, stage: ProcessingStage) -> ProcessingStatus:
        self._checkpoint(document_id, token)
        status = ProcessingStatus.processing(stage)
        await self._publish(document_id, status)
        return status

    async def _publish(self, document_id: str, status: ProcessingStatus) -> None:
        await self._tracker.update(document_id, status)
        await self._store.update_status(document_id, status)

    async def _publish_failure(self, document_id: str, status: ProcessingStatus) -> None:
        try:
            await self._publish(document_id, status)
        except Exception as exc:
            self._logger.error(
                "failed_status_not_persisted",
                document_id=document_id,
                error=str(exc),
            )

    async def _abandon(self, document: Document, removed: bool, start: float) -> ProcessingResult:
        doc_id = document.document_id
        if removed:
            try:
                rolled_back = await self._index.remove_document(doc_id)
                await self._store.delete_chunks(doc_id)
            except Exception as exc:
                self._logger.error("rollback_after_removal_failed", document_id=doc_id, error=str(exc))
            else:
                self._logger.info(
                    "processing_rolled_back_after_removal",
                    document_id=doc_id,
                    chunks=rolled_back,
                )
            self._tracker.forget(doc_id)
            status = ProcessingStatus.pending().fail(
                "Document was removed during processing", error_code="DocumentRemoved"
            )
        else:
            self._logger.info("processing_superseded", document_id=doc_id)
            status = ProcessingStatus.pending().fail(
                "Superseded by a newer processing run", error_code="RunSuperseded"
            )
        return ProcessingResult(
            document_id=doc_id,
            status=status,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )
