"""Hybrid retrieval: keyword extraction, the in-memory index, and context assembly."""

from src.services.retrieval.context_assembler import ContextAssembler
from src.services.retrieval.hybrid_index import HybridIndex, IndexEntry

__all__ = [
    "ContextAssembler",
    "HybridIndex",
    "IndexEntry",
]
