"""SQLite-backed durable store for documents, chunks and processing status.

Persists everything the in-memory hybrid index is rebuilt from to a local
SQLite database at ``data/documents.db``.  Uses ``aiosqlite`` for async
I/O, with one short-lived connection per operation.

Embeddings are stored as JSON arrays in a nullable ``embedding`` column so
lexical-only chunks (indexed without a provider) round-trip as NULL and
can be skipped in SQL when the index is rebuilt.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.document_store import IDocumentStore
from src.models.document import Document, ProcessingStage, ProcessingState, ProcessingStatus
from src.models.rag import Chunk, ChunkPosition

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    document_id       TEXT    PRIMARY KEY,
    tenant_id         TEXT    NOT NULL,
    filename          TEXT    NOT NULL,
    media_type        TEXT    NOT NULL,
    byte_length       INTEGER NOT NULL DEFAULT 0,
    storage_path      TEXT,
    extracted_text    TEXT,
    state             TEXT    NOT NULL,
    stage             TEXT,
    progress          REAL    NOT NULL DEFAULT 0,
    reason            TEXT,
    error_code        TEXT,
    status_updated_at TEXT    NOT NULL,
    created_at        TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS chunks (
    chunk_id     TEXT    PRIMARY KEY,
    document_id  TEXT    NOT NULL,
    tenant_id    TEXT    NOT NULL,
    chunk_index  INTEGER NOT NULL,
    content      TEXT    NOT NULL,
    embedding    TEXT,
    start_word   INTEGER,
    end_word     INTEGER,
    word_count   INTEGER
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_tenant ON documents(tenant_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_state ON documents(state);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id, chunk_index);",
]

_UPSERT_DOCUMENT_SQL = """\
INSERT INTO documents (
    document_id, tenant_id, filename, media_type, byte_length, storage_path,
    extracted_text, state, stage, progress, reason, error_code,
    status_updated_at, created_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(document_id)
DO UPDATE SET tenant_id         = excluded.tenant_id,
              filename          = excluded.filename,
              media_type        = excluded.media_type,
              byte_length       = excluded.byte_length,
              storage_path      = excluded.storage_path,
              extracted_text    = excluded.extracted_text,
              state             = excluded.state,
              stage             = excluded.stage,
              progress          = excluded.progress,
              reason            = excluded.reason,
              error_code        = excluded.error_code,
              status_updated_at = excluded.status_updated_at;
"""

_UPDATE_STATUS_SQL = """\
UPDATE documents
SET state = ?, stage = ?, progress = ?, reason = ?, error_code = ?, status_updated_at = ?
WHERE document_id = ?;
"""

_UPSERT_CHUNK_SQL = """\
INSERT INTO chunks (
    chunk_id, document_id, tenant_id, chunk_index, content, embedding,
    start_word, end_word, word_count
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(chunk_id)
DO UPDATE SET content     = excluded.content,
              embedding   = excluded.embedding,
              chunk_index = excluded.chunk_index,
              start_word  = excluded.start_word,
              end_word    = excluded.end_word,
              word_count  = excluded.word_count;
"""

_CHUNK_COLUMNS = (
    "c.chunk_id, c.document_id, c.tenant_id, c.chunk_index, c.content, "
    "c.embedding, c.start_word, c.end_word, c.word_count"
)

_SELECT_EMBEDDED_PAGE_SQL = f"""\
SELECT c.rowid AS row_id, {_CHUNK_COLUMNS}, COALESCE(d.filename, '') AS filename
FROM chunks c
LEFT JOIN documents d ON d.document_id = c.document_id
WHERE c.embedding IS NOT NULL AND c.rowid > ?
ORDER BY c.rowid
LIMIT ?;
"""


_SELECT_TEXT_MATCHES_SQL = """\
SELECT d.*
FROM documents d
WHERE d.tenant_id = ?
  AND d.state = ?
  AND d.extracted_text IS NOT NULL
  AND ({terms})
  AND EXISTS (SELECT 1 FROM chunks c WHERE c.document_id = d.document_id)
  {file_filter}
ORDER BY d.document_id
LIMIT ?;
"""


def _like_pattern(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _document_params(document: Document) -> tuple[Any, ...]:
    status = document.status
    return (
        document.document_id,
        document.tenant_id,
        document.filename,
        document.media_type,
        document.byte_length,
        document.storage_path,
        document.extracted_text,
        status.state.value,
        status.stage.value if status.stage else None,
        status.progress,
        status.reason,
        status.error_code,
        status.updated_at.isoformat(),
        document.created_at.isoformat(),
    )


def _row_to_document(row: aiosqlite.Row) -> Document:
    status = ProcessingStatus(
        state=ProcessingState(row["state"]),
        stage=ProcessingStage(row["stage"]) if row["stage"] else None,
        progress=row["progress"],
        reason=row["reason"],
        error_code=row["error_code"],
        updated_at=datetime.fromisoformat(row["status_updated_at"]),
    )
    return Document(
        document_id=row["document_id"],
        tenant_id=row["tenant_id"],
        filename=row["filename"],
        media_type=row["media_type"],
        byte_length=row["byte_length"],
        storage_path=row["storage_path"],
        extracted_text=row["extracted_text"],
        status=status,
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_chunk(row: aiosqlite.Row) -> Chunk:
    position = None
    if row["start_word"] is not None:
        position = ChunkPosition(
            start_word=row["start_word"],
            end_word=row["end_word"],
            word_count=row["word_count"],
        )
    return Chunk(
        chunk_id=row["chunk_id"],
        document_id=row["document_id"],
        tenant_id=row["tenant_id"],
        chunk_index=row["chunk_index"],
        content=row["content"],
        embedding=json.loads(row["embedding"]) if row["embedding"] else None,
        position=position,
    )


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed document, chunk and status persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents and chunks tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def save_document(self, document: Document) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPSERT_DOCUMENT_SQL, _document_params(document))
            await db.commit()

    async def get_document(self, document_id: str) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM documents WHERE document_id = ?", (document_id,))
            row = await cursor.fetchone()
        return _row_to_document(row) if row is not None else None

    async def delete_document(self, document_id: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            await db.execute("DELETE FROM documents WHERE document_id = ?", (document_id,))
            await db.commit()
        logger.info("document_deleted", document_id=document_id)

    async def update_status(self, document_id: str, status: ProcessingStatus) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPDATE_STATUS_SQL,
                (
                    status.state.value,
                    status.stage.value if status.stage else None,
                    status.progress,
                    status.reason,
                    status.error_code,
                    status.updated_at.isoformat(),
                    document_id,
                ),
            )
            await db.commit()

    async def save_extracted_text(self, document_id: str, text: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE documents SET extracted_text = ? WHERE document_id = ?",
                (text, document_id),
            )
            await db.commit()

    async def count_by_state(self, tenant_id: str | None = None) -> dict[str, int]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            if tenant_id:
                cursor = await db.execute(
                    "SELECT state, COUNT(*) AS total FROM documents WHERE tenant_id = ? GROUP BY state",
                    (tenant_id,),
                )
            else:
                cursor = await db.execute("SELECT state, COUNT(*) AS total FROM documents GROUP BY state")
            rows = await cursor.fetchall()
        return {row["state"]: row["total"] for row in rows}

    async def search_extracted_text(
        self,
        tenant_id: str,
        terms: list[str],
        file_ids: list[str] | None = None,
        limit: int = 10,
    ) -> list[Document]:
        terms = [t for t in terms if t.strip()]
        if not terms or limit <= 0 or (file_ids is not None and not file_ids):
            return []

        params: list[Any] = [tenant_id, ProcessingState.COMPLETED.value]
        params.extend(_like_pattern(t) for t in terms)
        file_filter = ""
        if file_ids is not None:
            allowed = list(dict.fromkeys(file_ids))
            file_filter = f"AND d.document_id IN ({', '.join('?' for _ in allowed)})"
            params.extend(allowed)
        params.append(limit)

        sql = _SELECT_TEXT_MATCHES_SQL.format(
            terms=" OR ".join("LOWER(d.extracted_text) LIKE ? ESCAPE '\\'" for _ in terms),
            file_filter=file_filter,
        )
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_document(r) for r in rows]

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def add_chunks(self, chunks: list[Chunk]) -> int:
        if not chunks:
            return 0
        params = [
            (
                c.chunk_id,
                c.document_id,
                c.tenant_id,
                c.chunk_index,
                c.content,
                json.dumps(c.embedding) if c.embedding else None,
                c.position.start_word if c.position else None,
                c.position.end_word if c.position else None,
                c.position.word_count if c.position else None,
            )
            for c in chunks
        ]
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(_UPSERT_CHUNK_SQL, params)
            await db.commit()
        logger.debug("chunks_persisted", chunks=len(chunks), document_id=chunks[0].document_id)
        return len(chunks)

    async def delete_chunks(self, document_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            deleted = cursor.rowcount
            await db.commit()
        return max(deleted, 0)

    async def get_chunks(self, document_id: str) -> list[Chunk]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks c WHERE c.document_id = ? ORDER BY c.chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_chunk(r) for r in rows]

    async def iter_embedded_chunks(self, batch_size: int = 500) -> AsyncIterator[tuple[Chunk, str]]:
        """Page through embedded chunks by rowid so memory stays bounded."""
        last_row_id = 0
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            while True:
                cursor = await db.execute(_SELECT_EMBEDDED_PAGE_SQL, (last_row_id, batch_size))
                rows = await cursor.fetchall()
                if not rows:
                    break
                for row in rows:
                    yield _row_to_chunk(row), row["filename"]
                last_row_id = rows[-1]["row_id"]

    def get_provider_name(self) -> str:
        return "sqlite"
