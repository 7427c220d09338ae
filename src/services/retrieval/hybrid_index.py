"""In-memory hybrid (vector + keyword) index over document chunks.

# ─── HOW SEARCH WORKS ──────────────────────────────────────────────────
#
#   query ─┬─ candidate narrowing: tenant, then optional file allowlist
#          │
#          ├─ vector pass   cosine(query, chunk) >= threshold * factor,
#          │                top min(limit*2, cap)
#          ├─ keyword pass  inverted-index hits per query keyword,
#          │                top limit*2
#          │
#          ├─ fusion        vector only  : sim * w_vec
#          │                both         : sim * w_vec + kw * w_kw
#          │                keyword only : kw * w_kw_only
#          │
#          └─ lexical gate  drop candidates missing too many literal
#                           query terms, then sort and truncate
#
# The index is a rebuildable cache: the relational store is the source
# of truth, and ``rebuild_from_store`` reloads every embedded chunk.
# Chunks stored without a vector are left out of the rebuild; the
# stored-text search in document_search.py answers for them.
#
# Every entry remembers the keywords it contributed, so removing a
# document touches only its own postings and never leaves an id behind.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
import structlog

from src.config.settings import Settings
from src.interfaces.document_store import IDocumentStore
from src.models.rag import Chunk, IndexStats, SearchResult
from src.services.ingestion.embedding_generator import EmbeddingGenerator, cosine_similarity
from src.services.retrieval.keywords import (
    extract_keywords,
    gate_terms,
    passes_lexical_gate,
    significant_keywords,
)
from src.utils.errors import IndexCorruptionError, RetrievalError

logger = structlog.get_logger(logger_name=__name__)

_REBUILD_BATCH = 500


@dataclass
class IndexEntry:
    """One indexed chunk with its vector and the keywords it posted."""

    chunk: Chunk
    filename: str
    vector: np.ndarray | None
    keywords: frozenset[str]

    @property
    def tenant_id(self) -> str:
        return self.chunk.tenant_id

    @property
    def document_id(self) -> str:
        return self.chunk.document_id


class HybridIndex:
    """Tenant-scoped hybrid search over chunk vectors and keywords.

    Parameters
    ----------
    embedder:
        Used to embed queries and to fix the index dimension.  ``None``
        (or an unavailable embedder) makes every search lexical-only.
    settings:
        Thresholds and fusion weights.
    """

    def __init__(self, embedder: EmbeddingGenerator | None, settings: Settings | None = None) -> None:
        self._embedder = embedder
        self._settings = settings or Settings()
        self._dimension = embedder.dimension if embedder is not None else self._settings.embedding_dimension

        self._entries: dict[str, IndexEntry] = {}
        self._doc_chunks: dict[str, set[str]] = {}
        self._doc_tenants: dict[str, str] = {}
        self._keyword_index: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self, store: IDocumentStore) -> int:
        """Load every embedded chunk from *store*; returns the count indexed."""
        return await self.rebuild_from_store(store)

    async def close(self) -> None:
        await self.clear()

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._doc_chunks.clear()
            self._doc_tenants.clear()
            self._keyword_index.clear()

    async def rebuild_from_store(self, store: IDocumentStore) -> int:
        """Clear the index and reload it from the durable store."""
        start = time.monotonic()
        await self.clear()

        indexed = 0
        batch: list[Chunk] = []
        filenames: dict[str, str] = {}
        async for chunk, filename in store.iter_embedded_chunks(batch_size=_REBUILD_BATCH):
            batch.append(chunk)
            filenames[chunk.document_id] = filename
            if len(batch) >= _REBUILD_BATCH:
                indexed += await self.add_chunks(batch, filenames)
                batch = []
        if batch:
            indexed += await self.add_chunks(batch, filenames)

        logger.info(
            "hybrid_index_rebuilt",
            store=store.get_provider_name(),
            chunks=indexed,
            documents=len(self._doc_chunks),
            elapsed_seconds=round(time.monotonic() - start, 3),
        )
        return indexed

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_chunks(self, chunks: Sequence[Chunk], filenames: dict[str, str] | None = None) -> int:
        """Insert or replace *chunks*; returns the number indexed.

        Raises
        ------
        IndexCorruptionError
            If a chunk's document is already bound to a different tenant.
            Nothing is written in that case.
        """
        filenames = filenames or {}
        async with self._lock:
            bindings = dict(self._doc_tenants)
            for chunk in chunks:
                bound = bindings.setdefault(chunk.document_id, chunk.tenant_id)
                if bound != chunk.tenant_id:
                    raise IndexCorruptionError(
                        f"Document {chunk.document_id} belongs to tenant {bound}, "
                        f"refusing chunk for tenant {chunk.tenant_id}"
                    )

            lexical_only = 0
            for chunk in chunks:
                vector = self._to_vector(chunk)
                if vector is None:
                    lexical_only += 1
                if chunk.chunk_id in self._entries:
                    self._drop_entry(chunk.chunk_id)

                entry = IndexEntry(
                    chunk=chunk,
                    filename=filenames.get(chunk.document_id, ""),
                    vector=vector,
                    keywords=frozenset(extract_keywords(chunk.content)),
                )
                self._entries[chunk.chunk_id] = entry
                self._doc_chunks.setdefault(chunk.document_id, set()).add(chunk.chunk_id)
                self._doc_tenants[chunk.document_id] = chunk.tenant_id
                for keyword in entry.keywords:
                    self._keyword_index.setdefault(keyword, set()).add(chunk.chunk_id)

        logger.debug("chunks_indexed", chunks=len(chunks), lexical_only=lexical_only)
        return len(chunks)

    async def remove_document(self, document_id: str) -> int:
        """Remove all chunks of *document_id*; returns how many were removed."""
        async with self._lock:
            chunk_ids = list(self._doc_chunks.get(document_id, ()))
            for chunk_id in chunk_ids:
                self._drop_entry(chunk_id)
            self._doc_chunks.pop(document_id, None)
            self._doc_tenants.pop(document_id, None)

        if chunk_ids:
            logger.info("document_removed_from_index", document_id=document_id, chunks=len(chunk_ids))
        return len(chunk_ids)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_document(self, document_id: str) -> bool:
        return document_id in self._doc_chunks

    def has_tenant(self, tenant_id: str) -> bool:
        return tenant_id in self._doc_tenants.values()

    @property
    def vector_search_available(self) -> bool:
        return self._embedder is not None and self._embedder.is_available()

    async def search(
        self,
        query: str,
        tenant_id: str,
        file_ids: Iterable[str] | None = None,
        limit: int = 10,
        threshold: float | None = None,
        query_embedding: Sequence[float] | None = None,
    ) -> list[SearchResult]:
        """Rank the tenant's chunks against *query*.

        Parameters
        ----------
        query:
            Free-text query.
        tenant_id:
            Only chunks owned by this tenant are considered.
        file_ids:
            Optional allowlist of document ids.  ``None`` means all of the
            tenant's documents; an empty list allows none of them and the
            search returns ``[]``.  An empty selection in a chat UI must
            therefore be passed as ``None``.
        limit:
            Maximum results returned.
        threshold:
            Vector similarity threshold; defaults to ``search_threshold``.
        query_embedding:
            Precomputed query vector; embedded on demand when omitted.
        """
        if limit <= 0 or not query.strip():
            return []

        settings = self._settings
        threshold = settings.search_threshold if threshold is None else threshold
        query_vector = await self._query_vector(query, query_embedding)

        async with self._lock:
            candidates = self._candidates(tenant_id, file_ids)
            if not candidates:
                return []

            vector_hits = self._vector_pass(candidates, query_vector, threshold, limit)
            keyword_hits = self._keyword_pass(candidates, query, limit)

            fused: dict[str, tuple[IndexEntry, float, float]] = {}
            for chunk_id, (entry, similarity) in vector_hits.items():
                fused[chunk_id] = (entry, similarity, similarity * settings.fusion_vector_weight)
            for chunk_id, (entry, keyword_score) in keyword_hits.items():
                if chunk_id in fused:
                    _, similarity, score = fused[chunk_id]
                    fused[chunk_id] = (entry, similarity, score + keyword_score * settings.fusion_keyword_weight)
                else:
                    fused[chunk_id] = (entry, 0.0, keyword_score * settings.fusion_keyword_only_weight)

            terms = gate_terms(query)
            gated = [
                (entry, similarity, score)
                for entry, similarity, score in fused.values()
                if passes_lexical_gate(terms, entry.chunk.content, settings.lexical_gate_min_ratio)
            ]

        gated.sort(key=lambda item: (-item[2], item[0].chunk.chunk_id))
        results = [
            SearchResult(chunk=entry.chunk, filename=entry.filename, similarity=similarity, relevance_score=score)
            for entry, similarity, score in gated[:limit]
        ]

        logger.info(
            "hybrid_search_complete",
            tenant_id=tenant_id,
            candidates=len(candidates),
            vector_hits=len(vector_hits),
            keyword_hits=len(keyword_hits),
            gated_out=len(fused) - len(gated),
            returned=len(results),
        )
        return results

    def get_chunks_for_documents(self, tenant_id: str, document_ids: Iterable[str]) -> list[Chunk]:
        """Return the tenant's chunks for *document_ids*, in document order."""
        chunks = [
            self._entries[chunk_id].chunk
            for document_id in dict.fromkeys(document_ids)
            if self._doc_tenants.get(document_id) == tenant_id
            for chunk_id in self._doc_chunks.get(document_id, ())
        ]
        return sorted(chunks, key=lambda c: (c.document_id, c.chunk_index))

    def stats(self, tenant_id: str | None = None) -> IndexStats:
        entries = [e for e in self._entries.values() if tenant_id is None or e.tenant_id == tenant_id]
        if not entries:
            return IndexStats()

        embedded = [e for e in entries if e.vector is not None]
        content_chars = sum(len(e.chunk.content) for e in entries)
        if tenant_id is None:
            keyword_count = len(self._keyword_index)
        else:
            keyword_count = len(set().union(*(e.keywords for e in entries)))

        return IndexStats(
            total_chunks=len(entries),
            total_documents=len({e.document_id for e in entries}),
            total_tenants=len({e.tenant_id for e in entries}),
            embedded_chunks=len(embedded),
            keyword_count=keyword_count,
            avg_chunk_chars=content_chars / len(entries),
            approx_storage_bytes=content_chars + 4 * self._dimension * len(embedded),
        )

    def check_integrity(self) -> None:
        """Verify the cross-references between entries, documents and postings.

        Raises
        ------
        IndexCorruptionError
            On the first inconsistency found.
        """
        for keyword, chunk_ids in self._keyword_index.items():
            if not chunk_ids:
                raise IndexCorruptionError(f"Empty posting list for keyword {keyword!r}")
            for chunk_id in chunk_ids:
                entry = self._entries.get(chunk_id)
                if entry is None or keyword not in entry.keywords:
                    raise IndexCorruptionError(f"Dangling posting {keyword!r} -> {chunk_id}")

        for chunk_id, entry in self._entries.items():
            if chunk_id not in self._doc_chunks.get(entry.document_id, ()):
                raise IndexCorruptionError(f"Chunk {chunk_id} missing from its document's chunk set")
            if self._doc_tenants.get(entry.document_id) != entry.tenant_id:
                raise IndexCorruptionError(f"Tenant mismatch for chunk {chunk_id}")
            for keyword in entry.keywords:
                if chunk_id not in self._keyword_index.get(keyword, ()):
                    raise IndexCorruptionError(f"Keyword {keyword!r} of chunk {chunk_id} not posted")

        for document_id, chunk_ids in self._doc_chunks.items():
            if document_id not in self._doc_tenants:
                raise IndexCorruptionError(f"Document {document_id} has no tenant binding")
            for chunk_id in chunk_ids:
                entry = self._entries.get(chunk_id)
                if entry is None or entry.document_id != document_id:
                    raise IndexCorruptionError(f"Document {document_id} lists unknown chunk {chunk_id}")

        if set(self._doc_tenants) != set(self._doc_chunks):
            raise IndexCorruptionError("Tenant bindings and document chunk sets disagree")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _to_vector(self, chunk: Chunk) -> np.ndarray | None:
        if not chunk.embedding:
            return None
        if len(chunk.embedding) != self._dimension:
            logger.warning(
                "embedding_dimension_mismatch",
                chunk_id=chunk.chunk_id,
                expected=self._dimension,
                actual=len(chunk.embedding),
            )
            return None
        return np.asarray(chunk.embedding, dtype=np.float64)

    def _drop_entry(self, chunk_id: str) -> None:
        entry = self._entries.pop(chunk_id)
        for keyword in entry.keywords:
            postings = self._keyword_index.get(keyword)
            if postings is None:
                continue
            postings.discard(chunk_id)
            if not postings:
                del self._keyword_index[keyword]
        siblings = self._doc_chunks.get(entry.document_id)
        if siblings is not None:
            siblings.discard(chunk_id)
            if not siblings:
                del self._doc_chunks[entry.document_id]
                self._doc_tenants.pop(entry.document_id, None)

    async def _query_vector(self, query: str, query_embedding: Sequence[float] | None) -> np.ndarray | None:
        if query_embedding is not None:
            vector = np.asarray(query_embedding, dtype=np.float64)
        elif self._embedder is not None and self._embedder.is_available():
            try:
                vector = np.asarray(await self._embedder.embed_query(query), dtype=np.float64)
            except RetrievalError as exc:
                logger.warning("query_embedding_failed_lexical_only", error=str(exc))
                return None
        else:
            return None

        if vector.size != self._dimension:
            logger.warning(
                "query_dimension_mismatch_lexical_only",
                expected=self._dimension,
                actual=vector.size,
            )
            return None
        return vector

    def _candidates(self, tenant_id: str, file_ids: Iterable[str] | None) -> list[IndexEntry]:
        allowed = set(file_ids) if file_ids is not None else None
        return [
            entry
            for entry in self._entries.values()
            if entry.tenant_id == tenant_id and (allowed is None or entry.document_id in allowed)
        ]

    def _vector_pass(
        self,
        candidates: list[IndexEntry],
        query_vector: np.ndarray | None,
        threshold: float,
        limit: int,
    ) -> dict[str, tuple[IndexEntry, float]]:
        if query_vector is None:
            return {}

        cutoff = threshold * self._settings.vector_threshold_factor
        scored = []
        for entry in candidates:
            if entry.vector is None:
                continue
            similarity = cosine_similarity(query_vector, entry.vector)
            if similarity >= cutoff:
                scored.append((entry, similarity))

        scored.sort(key=lambda item: (-item[1], item[0].chunk.chunk_id))
        keep = min(limit * 2, self._settings.vector_candidate_cap)
        return {entry.chunk.chunk_id: (entry, similarity) for entry, similarity in scored[:keep]}

    def _keyword_pass(
        self,
        candidates: list[IndexEntry],
        query: str,
        limit: int,
    ) -> dict[str, tuple[IndexEntry, float]]:
        query_keywords = extract_keywords(query)
        if not query_keywords:
            return {}

        significant = significant_keywords(query_keywords)
        min_required = max(1, math.ceil(len(significant) * self._settings.keyword_min_significant_ratio))
        by_id = {entry.chunk.chunk_id: entry for entry in candidates}

        hits: dict[str, int] = {}
        for keyword in query_keywords:
            for chunk_id in self._keyword_index.get(keyword, ()):
                if chunk_id in by_id:
                    hits[chunk_id] = hits.get(chunk_id, 0) + 1

        scored = []
        for chunk_id, score in hits.items():
            normalized = score / len(query_keywords)
            if score >= min_required or normalized >= self._settings.keyword_min_normalized_score:
                scored.append((by_id[chunk_id], normalized))

        scored.sort(key=lambda item: (-item[1], item[0].chunk.chunk_id))
        return {entry.chunk.chunk_id: (entry, score) for entry, score in scored[: limit * 2]}
