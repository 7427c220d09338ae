"""Shared pytest fixtures for the retrieval core test suite."""

from __future__ import annotations

import hashlib
import math
import re
from pathlib import Path

import pytest
import pytest_asyncio

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.rag import Chunk
from src.providers.storage.local_object_storage import LocalObjectStorage
from src.providers.store.sqlite_document_store import SQLiteDocumentStore
from src.services.ingestion.embedding_generator import EmbeddingGenerator

# ---------------------------------------------------------------------------
# Deterministic embeddings
# ---------------------------------------------------------------------------

EMBEDDING_DIM = 64

_WORD = re.compile(r"\w+")


def bag_of_words_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Hash each lowercase word into a bucket and normalise to unit length.

    Texts sharing words get positive cosine similarity, unrelated texts
    are (nearly) orthogonal, and the same text always maps to the same
    vector.
    """
    vector = [0.0] * dim
    for word in _WORD.findall(text.lower()):
        bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % dim
        vector[bucket] += 1.0
    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        return vector
    return [v / magnitude for v in vector]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self, dimension: int = EMBEDDING_DIM, available: bool = True) -> None:
        self.dimension = dimension
        self.available = available
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [bag_of_words_vector(t, self.dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self.dimension

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return self.available


class DroppingEmbeddingProvider(FakeEmbeddingProvider):
    """Returns one vector fewer than it was asked for."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors = await super().embed(texts)
        return vectors[:-1]


def make_chunk(
    content: str,
    document_id: str = "doc-1",
    tenant_id: str = "tenant-a",
    index: int = 0,
    embed: bool = True,
) -> Chunk:
    """Build a chunk, embedded with the bag-of-words vector by default."""
    return Chunk(
        chunk_id=Chunk.make_id(document_id, index),
        document_id=document_id,
        tenant_id=tenant_id,
        content=content,
        chunk_index=index,
        embedding=bag_of_words_vector(content) if embed else None,
    )


# ---------------------------------------------------------------------------
# Settings and components
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any local .env, with fast batching."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        ollama_base_url="",
        embedding_dimension=EMBEDDING_DIM,
        embedding_batch_delay=0.0,
        chunk_max_words=50,
        chunk_overlap_words=10,
        document_db_path=str(tmp_path / "documents.db"),
        object_storage_root=str(tmp_path / "uploads"),
    )


@pytest.fixture()
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture()
def embedder(fake_provider: FakeEmbeddingProvider) -> EmbeddingGenerator:
    return EmbeddingGenerator(fake_provider, batch_size=100, batch_delay=0.0)


@pytest_asyncio.fixture()
async def store(tmp_path: Path) -> SQLiteDocumentStore:
    document_store = SQLiteDocumentStore(db_path=tmp_path / "documents.db")
    await document_store.initialize()
    return document_store


@pytest.fixture()
def object_storage(tmp_path: Path) -> LocalObjectStorage:
    return LocalObjectStorage(root=tmp_path / "uploads")
