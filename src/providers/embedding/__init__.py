"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
The hybrid index compares them by cosine similarity at query time.

Two implementations of IEmbeddingProvider (in default priority order):
    1. OpenAIEmbeddingProvider: text-embedding-3-small (1536 dims).
       Requires an API key; also works against OpenAI-compatible endpoints.
    2. OllamaEmbeddingProvider: nomic-embed-text via a local Ollama server
       (768 dims).  Free, but a corpus embedded with one provider must be
       re-embedded before switching to the other.
"""

from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OllamaEmbeddingProvider", "OpenAIEmbeddingProvider"]
