"""Public interface definitions for every external collaborator.

The retrieval core reaches embedding APIs, OCR engines, the relational
store and object storage exclusively through the abstract base classes in
this package.  Concrete adapters live in ``src/providers/`` and are
injected at construction time, so unit tests can pass mocks or fakes.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider   →  OpenAIEmbeddingProvider, OllamaEmbeddingProvider
    IOCRProvider         →  TesseractOCRProvider
    IDocumentStore       →  SQLiteDocumentStore
    IObjectStorage       →  LocalObjectStorage
"""

from __future__ import annotations

from src.interfaces.document_store import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.object_storage import IObjectStorage
from src.interfaces.ocr_provider import IOCRProvider

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "IOCRProvider",
    "IObjectStorage",
]
