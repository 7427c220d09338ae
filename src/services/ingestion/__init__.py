"""Chunking and embedding stages of the document ingestion pipeline.

1. **Chunk** (chunker.py / TextChunker) -- Splits extracted text into
   fixed-size overlapping word windows with deterministic chunk ids.

2. **Embed** (embedding_generator.py / EmbeddingGenerator) -- Batches
   chunk text through an IEmbeddingProvider and maps every vector back to
   its chunk id.

Extraction lives in ``src.services.extraction``; the stages are wired
together by ``src.pipeline.orchestrator.IngestionOrchestrator``.
"""

from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.embedding_generator import EmbeddingGenerator, cosine_similarity

__all__ = [
    "EmbeddingGenerator",
    "TextChunker",
    "cosine_similarity",
]
