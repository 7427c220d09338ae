"""Application assembly for the document retrieval core.

Wires together providers, services and the ingestion pipeline via
dependency injection.  Hosts (the operator CLI, a web upload handler,
tests) call :func:`build_services` once, then :func:`open_services` to
create the database tables and load the hybrid index from the store.

Embedding provider selection falls back OpenAI → Ollama → none; with no
provider, documents are indexed for keyword search only (unless
``REQUIRE_EMBEDDINGS`` is set).
"""

from __future__ import annotations

from typing import Any

import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.pipeline.ingestion_queue import IngestionQueue
from src.pipeline.orchestrator import IngestionOrchestrator
from src.pipeline.status_tracker import StatusTracker
from src.providers.ocr.tesseract_provider import TesseractOCRProvider
from src.providers.storage.local_object_storage import LocalObjectStorage
from src.providers.store.sqlite_document_store import SQLiteDocumentStore
from src.services.extraction.office_converter import OfficeConverter
from src.services.extraction.text_extractor import TextExtractor
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_generator import EmbeddingGenerator
from src.services.retrieval.context_assembler import ContextAssembler
from src.services.retrieval.document_search import DocumentSearchService
from src.services.retrieval.hybrid_index import HybridIndex
from src.utils.image_preprocessor import ImagePreprocessor
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Embedding provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """Select the first available embedding provider.

    Priority: OpenAI/OpenAI-compatible (if API key set) ->
              Ollama (if a base URL is configured and reachable).
    Returns ``None`` if no embedding provider is available.
    """
    if app_settings.openai_api_key:
        from src.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    if app_settings.ollama_base_url:
        from src.providers.embedding.ollama_embedding_provider import (
            OllamaEmbeddingProvider,
        )

        provider = OllamaEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    _logger.warning("no_embedding_provider_available", mode="lexical_only")
    return None


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_services(
    custom_settings: Settings | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Parameters
    ----------
    custom_settings:
        Settings to use; read from the environment when omitted.
    embedding_provider:
        Explicit embedding backend.  When omitted the fallback chain in
        :func:`_build_embedding_provider` decides.

    Returns
    -------
    dict
        Flat mapping of component name to instance.
    """
    app_settings = custom_settings or Settings()

    # -- Durable state --
    store = SQLiteDocumentStore(db_path=app_settings.document_db_path)
    object_storage = LocalObjectStorage(root=app_settings.object_storage_root)

    # -- Extraction --
    preprocessor = ImagePreprocessor(
        min_width=app_settings.ocr_min_width,
        target_height=app_settings.ocr_target_height,
    )
    extractor = TextExtractor(
        ocr_provider=TesseractOCRProvider(),
        preprocessor=preprocessor,
        settings=app_settings,
        office_converter=OfficeConverter(),
    )

    # -- Chunking + embedding --
    chunker = TextChunker(
        max_words=app_settings.chunk_max_words,
        overlap_words=app_settings.chunk_overlap_words,
    )
    provider = embedding_provider or _build_embedding_provider(app_settings)
    embedder = EmbeddingGenerator(
        provider,
        batch_size=app_settings.embedding_batch_size,
        batch_delay=app_settings.embedding_batch_delay,
        default_dimension=app_settings.embedding_dimension,
    )

    # -- Retrieval --
    index = HybridIndex(embedder, settings=app_settings)
    search = DocumentSearchService(index, store, settings=app_settings)
    assembler = ContextAssembler(max_results=app_settings.context_max_results)

    # -- Pipeline --
    tracker = StatusTracker()
    orchestrator = IngestionOrchestrator(
        extractor=extractor,
        chunker=chunker,
        embedder=embedder,
        index=index,
        store=store,
        object_storage=object_storage,
        tracker=tracker,
        settings=app_settings,
    )
    queue = IngestionQueue(
        orchestrator,
        workers=app_settings.ingestion_workers,
        maxsize=app_settings.ingestion_queue_size,
    )

    _logger.info(
        "services_built",
        embedding_provider=embedder.provider_name or "none",
        index_dimension=index.dimension,
        db_path=app_settings.document_db_path,
    )

    return {
        "settings": app_settings,
        "store": store,
        "object_storage": object_storage,
        "extractor": extractor,
        "chunker": chunker,
        "embedder": embedder,
        "index": index,
        "search": search,
        "assembler": assembler,
        "tracker": tracker,
        "orchestrator": orchestrator,
        "queue": queue,
    }


async def open_services(services: dict[str, Any]) -> None:
    """Create tables and load the hybrid index from the durable store."""
    store: SQLiteDocumentStore = services["store"]
    index: HybridIndex = services["index"]
    await store.initialize()
    await index.open(store)


async def close_services(services: dict[str, Any]) -> None:
    queue: IngestionQueue = services["queue"]
    index: HybridIndex = services["index"]
    await queue.stop()
    await index.close()
