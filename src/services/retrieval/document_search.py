"""Query entry point combining hybrid search with a stored-text fallback.

Hybrid search only sees what the in-memory index holds.  After a restart
without an embedding provider the index is empty for lexical-only
documents (the rebuild loads embedded chunks only), so queries fall back
to matching the extracted text persisted with each document:

    1. exact phrase: documents containing the whole query
    2. keywords: documents containing any of the first few significant
       query words, when fewer than two exact matches were found

Each fallback hit is scored (phrase +10, +2 per keyword occurrence, +3
when the phrase sits in the first half of the text) and trimmed to a
snippet around the first match, then returned as a single-chunk
:class:`~src.models.rag.SearchResult` so the context assembler can use
it unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from src.config.settings import Settings
from src.interfaces.document_store import IDocumentStore
from src.models.document import Document
from src.models.rag import Chunk, SearchResult
from src.services.retrieval.hybrid_index import HybridIndex
from src.services.retrieval.keywords import GATE_STOP_WORDS, MIN_WORD_LENGTH

logger = structlog.get_logger(logger_name=__name__)

MIN_EXACT_MATCHES = 2
MAX_FALLBACK_KEYWORDS = 5
PHRASE_SCORE = 10.0
KEYWORD_OCCURRENCE_SCORE = 2.0
EARLY_PHRASE_BONUS = 3.0
SNIPPET_BEFORE = 150
SNIPPET_AFTER = 300


def fallback_keywords(query: str) -> list[str]:
    """Significant lowercase query words, in query order, capped at five.

    >>> fallback_keywords("What is the revenue for EMEA and APAC?")
    ['revenue', 'emea', 'apac']
    """
    words = re.sub(r"[^\w\s]", " ", query.lower()).split()
    keywords = [w for w in dict.fromkeys(words) if len(w) >= MIN_WORD_LENGTH and w not in GATE_STOP_WORDS]
    return keywords[:MAX_FALLBACK_KEYWORDS]


def text_relevance(text: str, query: str) -> float:
    lowered = text.lower()
    phrase = query.lower().strip()
    score = 0.0
    if phrase and phrase in lowered:
        score += PHRASE_SCORE
        if phrase in lowered[: len(lowered) // 2]:
            score += EARLY_PHRASE_BONUS
    for keyword in fallback_keywords(query):
        score += KEYWORD_OCCURRENCE_SCORE * len(re.findall(re.escape(keyword), lowered))
    return score


def extract_snippet(text: str, query: str) -> str:
    """Cut a window of *text* around the first phrase or keyword match."""
    lowered = text.lower()
    position = lowered.find(query.lower().strip())
    if position == -1:
        for keyword in fallback_keywords(query):
            position = lowered.find(keyword)
            if position != -1:
                break
    if position == -1:
        return text[:SNIPPET_AFTER] + ("..." if len(text) > SNIPPET_AFTER else "")

    start = max(0, position - SNIPPET_BEFORE)
    end = min(len(text), position + SNIPPET_AFTER)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet += "..."
    return snippet


class DocumentSearchService:
    """Answers tenant queries from the hybrid index, or from stored text.

    Parameters
    ----------
    index:
        The in-memory hybrid index.
    store:
        Durable store holding each document's extracted text.
    settings:
        ``text_search_fallback`` switches the fallback off.
    """

    def __init__(self, index: HybridIndex, store: IDocumentStore, settings: Settings | None = None) -> None:
        self._index = index
        self._store = store
        self._settings = settings or Settings()

    async def search(
        self,
        query: str,
        tenant_id: str,
        file_ids: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """Hybrid search first; stored-text search when the index cannot answer.

        The fallback runs only when hybrid search returned nothing and
        either the index holds no chunks for *tenant_id* or no embedding
        provider is available.
        """
        limit = self._settings.search_default_limit if limit is None else limit
        allowed = list(file_ids) if file_ids is not None else None

        results = await self._index.search(query, tenant_id=tenant_id, file_ids=allowed, limit=limit)
        if results or not self._settings.text_search_fallback:
            return results
        if self._index.has_tenant(tenant_id) and self._index.vector_search_available:
            return results

        fallback = await self.search_stored_text(query, tenant_id, allowed, limit)
        logger.info(
            "stored_text_search_fallback",
            tenant_id=tenant_id,
            index_has_tenant=self._index.has_tenant(tenant_id),
            returned=len(fallback),
        )
        return fallback

    async def search_stored_text(
        self,
        query: str,
        tenant_id: str,
        file_ids: list[str] | None = None,
        limit: int = 5,
    ) -> list[SearchResult]:
        """Match *query* against the tenant's stored extracted text."""
        phrase = query.lower().strip()
        if limit <= 0 or not phrase:
            return []

        exact = await self._store.search_extracted_text(tenant_id, [phrase], file_ids, limit)
        ranked = self._rank(exact, query)
        if len(ranked) >= MIN_EXACT_MATCHES:
            return [self._to_result(doc, query, score) for doc, score in ranked[:limit]]

        keywords = fallback_keywords(query)
        if keywords:
            matched = await self._store.search_extracted_text(tenant_id, keywords, file_ids, limit * 2)
            seen = {doc.document_id for doc, _ in ranked}
            ranked.extend(item for item in self._rank(matched, query) if item[0].document_id not in seen)

        return [self._to_result(doc, query, score) for doc, score in ranked[:limit]]

    @staticmethod
    def _rank(documents: list[Document], query: str) -> list[tuple[Document, float]]:
        scored = [(doc, text_relevance(doc.extracted_text or "", query)) for doc in documents]
        scored.sort(key=lambda item: (-item[1], item[0].document_id))
        return scored

    @staticmethod
    def _to_result(document: Document, query: str, score: float) -> SearchResult:
        normalized = min(score / PHRASE_SCORE, 1.0)
        chunk = Chunk(
            chunk_id=f"{document.document_id}-text",
            document_id=document.document_id,
            tenant_id=document.tenant_id,
            content=extract_snippet(document.extracted_text or "", query),
            chunk_index=0,
        )
        return SearchResult(
            chunk=chunk,
            filename=document.filename,
            similarity=normalized,
            relevance_score=normalized,
        )
