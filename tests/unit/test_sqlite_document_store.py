"""Unit tests for SQLiteDocumentStore persistence."""

from __future__ import annotations

import pytest

from src.models.document import Document, ProcessingStage, ProcessingState, ProcessingStatus
from src.providers.store.sqlite_document_store import SQLiteDocumentStore
from tests.conftest import make_chunk


def _make_document(document_id: str = "doc-1", tenant_id: str = "tenant-a", **overrides) -> Document:
    fields = {
        "document_id": document_id,
        "tenant_id": tenant_id,
        "filename": f"{document_id}.txt",
        "media_type": "text/plain",
        "byte_length": 42,
        "storage_path": f"{tenant_id}/{document_id}/{document_id}.txt",
    }
    fields.update(overrides)
    return Document(**fields)


# ======================================================================
# Documents
# ======================================================================


class TestDocuments:
    @pytest.mark.asyncio
    async def test_save_and_get(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document())

        loaded = await store.get_document("doc-1")

        assert loaded is not None
        assert loaded.tenant_id == "tenant-a"
        assert loaded.storage_path == "tenant-a/doc-1/doc-1.txt"
        assert loaded.status.state == ProcessingState.PENDING

    @pytest.mark.asyncio
    async def test_missing_document(self, store: SQLiteDocumentStore) -> None:
        assert await store.get_document("missing") is None

    @pytest.mark.asyncio
    async def test_save_is_an_upsert(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document())
        await store.save_document(_make_document(filename="renamed.txt"))

        loaded = await store.get_document("doc-1")
        assert loaded is not None
        assert loaded.filename == "renamed.txt"

    @pytest.mark.asyncio
    async def test_update_status_round_trips_failure(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document())
        failed = ProcessingStatus.processing(ProcessingStage.EMBEDDING).fail("provider down", "EmbeddingProviderError")

        await store.update_status("doc-1", failed)

        loaded = await store.get_document("doc-1")
        assert loaded is not None
        assert loaded.status.state == ProcessingState.FAILED
        assert loaded.status.stage == ProcessingStage.EMBEDDING
        assert loaded.status.progress == 50.0
        assert loaded.status.error_code == "EmbeddingProviderError"
        assert loaded.status.reason == "provider down"

    @pytest.mark.asyncio
    async def test_save_extracted_text(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document())

        await store.save_extracted_text("doc-1", "hello world")

        loaded = await store.get_document("doc-1")
        assert loaded is not None
        assert loaded.extracted_text == "hello world"

    @pytest.mark.asyncio
    async def test_count_by_state_scoped_to_tenant(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document("doc-1"))
        await store.save_document(_make_document("doc-2"))
        await store.save_document(_make_document("doc-3", tenant_id="tenant-b"))
        await store.update_status("doc-2", ProcessingStatus.completed())

        assert await store.count_by_state("tenant-a") == {"pending": 1, "completed": 1}
        assert await store.count_by_state() == {"pending": 2, "completed": 1}

    @pytest.mark.asyncio
    async def test_delete_document_removes_chunks(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document())
        await store.add_chunks([make_chunk("some text")])

        await store.delete_document("doc-1")

        assert await store.get_document("doc-1") is None
        assert await store.get_chunks("doc-1") == []


# ======================================================================
# Chunks
# ======================================================================


class TestChunks:
    @pytest.mark.asyncio
    async def test_add_and_get_in_order(self, store: SQLiteDocumentStore) -> None:
        chunks = [make_chunk(f"part {i}", index=i) for i in (2, 0, 1)]

        assert await store.add_chunks(chunks) == 3

        loaded = await store.get_chunks("doc-1")
        assert [c.chunk_index for c in loaded] == [0, 1, 2]
        assert loaded[0].embedding == pytest.approx(make_chunk("part 0").embedding)

    @pytest.mark.asyncio
    async def test_lexical_only_chunk_keeps_null_embedding(self, store: SQLiteDocumentStore) -> None:
        await store.add_chunks([make_chunk("no vector", embed=False)])

        loaded = await store.get_chunks("doc-1")
        assert loaded[0].embedding is None

    @pytest.mark.asyncio
    async def test_add_chunks_upserts_by_id(self, store: SQLiteDocumentStore) -> None:
        await store.add_chunks([make_chunk("original")])
        await store.add_chunks([make_chunk("replacement")])

        loaded = await store.get_chunks("doc-1")
        assert [c.content for c in loaded] == ["replacement"]

    @pytest.mark.asyncio
    async def test_add_nothing(self, store: SQLiteDocumentStore) -> None:
        assert await store.add_chunks([]) == 0

    @pytest.mark.asyncio
    async def test_delete_chunks_returns_count(self, store: SQLiteDocumentStore) -> None:
        await store.add_chunks([make_chunk(f"part {i}", index=i) for i in range(4)])

        assert await store.delete_chunks("doc-1") == 4
        assert await store.delete_chunks("doc-1") == 0

    @pytest.mark.asyncio
    async def test_iter_embedded_chunks_pages_and_skips_unembedded(self, store: SQLiteDocumentStore) -> None:
        await store.save_document(_make_document())
        await store.add_chunks([make_chunk(f"embedded {i}", index=i) for i in range(5)])
        await store.add_chunks([make_chunk("lexical", index=9, embed=False)])

        rows = [item async for item in store.iter_embedded_chunks(batch_size=2)]

        assert len(rows) == 5
        assert {filename for _, filename in rows} == {"doc-1.txt"}
        assert all(chunk.embedding for chunk, _ in rows)

    @pytest.mark.asyncio
    async def test_iter_embedded_chunks_without_document_row(self, store: SQLiteDocumentStore) -> None:
        await store.add_chunks([make_chunk("orphan", document_id="ghost")])

        rows = [item async for item in store.iter_embedded_chunks()]

        assert rows[0][1] == ""


# ======================================================================
# Stored-text search
# ======================================================================


async def _save_searchable(
    store: SQLiteDocumentStore,
    document_id: str,
    text: str,
    tenant_id: str = "tenant-a",
    state: ProcessingStatus | None = None,
    with_chunks: bool = True,
) -> None:
    await store.save_document(
        _make_document(document_id, tenant_id, extracted_text=text, status=state or ProcessingStatus.completed())
    )
    if with_chunks:
        await store.add_chunks([make_chunk(text, document_id=document_id, tenant_id=tenant_id, embed=False)])


class TestSearchExtractedText:
    @pytest.mark.asyncio
    async def test_matches_any_term_case_insensitively(self, store: SQLiteDocumentStore) -> None:
        await _save_searchable(store, "budget", "Q3 revenue for EMEA")
        await _save_searchable(store, "memo", "Hiring plan for APAC")
        await _save_searchable(store, "notes", "Office move next spring")

        found = await store.search_extracted_text("tenant-a", ["emea", "apac"])

        assert [d.document_id for d in found] == ["budget", "memo"]
        assert found[0].extracted_text == "Q3 revenue for EMEA"

    @pytest.mark.asyncio
    async def test_scoped_to_tenant_and_allowlist(self, store: SQLiteDocumentStore) -> None:
        await _save_searchable(store, "a-1", "revenue report")
        await _save_searchable(store, "a-2", "revenue forecast")
        await _save_searchable(store, "b-1", "revenue leak", tenant_id="tenant-b")

        scoped = await store.search_extracted_text("tenant-a", ["revenue"], file_ids=["a-2", "b-1"])
        nothing = await store.search_extracted_text("tenant-a", ["revenue"], file_ids=[])

        assert [d.document_id for d in scoped] == ["a-2"]
        assert nothing == []

    @pytest.mark.asyncio
    async def test_skips_unfinished_and_chunkless_documents(self, store: SQLiteDocumentStore) -> None:
        await _save_searchable(store, "done", "revenue table")
        await _save_searchable(
            store,
            "running",
            "revenue draft",
            state=ProcessingStatus.processing(ProcessingStage.EMBEDDING),
        )
        await _save_searchable(store, "removed", "revenue archive", with_chunks=False)

        found = await store.search_extracted_text("tenant-a", ["revenue"])

        assert [d.document_id for d in found] == ["done"]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, store: SQLiteDocumentStore) -> None:
        await _save_searchable(store, "pct", "margin grew 5% this year")
        await _save_searchable(store, "plain", "margin grew 52 points")

        found = await store.search_extracted_text("tenant-a", ["5%"])

        assert [d.document_id for d in found] == ["pct"]

    @pytest.mark.asyncio
    async def test_limit_and_blank_terms(self, store: SQLiteDocumentStore) -> None:
        for i in range(3):
            await _save_searchable(store, f"doc-{i}", "revenue line")

        assert len(await store.search_extracted_text("tenant-a", ["revenue"], limit=2)) == 2
        assert await store.search_extracted_text("tenant-a", ["  "]) == []
