"""Batched embedding generation and cosine similarity.

:class:`EmbeddingGenerator` sits between the pipeline and an
:class:`~src.interfaces.embedding_provider.IEmbeddingProvider`.  It owns
the batching policy (provider-sized batches, processed sequentially with a
short pause between them to respect rate limits) and the all-or-nothing
contract: a call either returns a vector for every non-blank chunk or
raises, never a partial result.

Results are keyed by ``chunk_id`` rather than returned positionally,
because blank chunks are dropped before the provider sees them and the
two lists can differ in length.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

import numpy as np
import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.rag import Chunk
from src.utils.errors import (
    DimensionMismatchError,
    EmbeddingCountMismatchError,
    EmbeddingProviderError,
    EmbeddingUnavailableError,
)

logger = structlog.get_logger(logger_name=__name__)


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Return the cosine of the angle between *a* and *b*.

    Defined as ``0.0`` when either vector has zero magnitude.

    Raises
    ------
    DimensionMismatchError
        If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(
            f"Cannot compare vectors of dimension {va.size} and {vb.size}"
        )
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    similarity = float(np.dot(va, vb) / norm)
    # Float rounding can push identical vectors a hair past 1.0.
    return max(-1.0, min(1.0, similarity))


class EmbeddingGenerator:
    """Embeds chunks and queries through an injected provider.

    Parameters
    ----------
    provider:
        The embedding backend, or ``None`` when none is configured.
    batch_size:
        Maximum chunks per provider call.
    batch_delay:
        Seconds to pause between consecutive batches.
    default_dimension:
        Dimension reported when no provider is configured.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider | None,
        batch_size: int = 100,
        batch_delay: float = 0.1,
        default_dimension: int = 1536,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self._provider = provider
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._default_dimension = default_dimension

    @property
    def dimension(self) -> int:
        if self._provider is not None:
            return self._provider.get_dimension()
        return self._default_dimension

    @property
    def provider_name(self) -> str | None:
        return self._provider.get_provider_name() if self._provider is not None else None

    def is_available(self) -> bool:
        return self._provider is not None and self._provider.is_available()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, chunks: Sequence[Chunk]) -> dict[str, list[float]]:
        """Embed every non-blank chunk.

        Returns
        -------
        dict[str, list[float]]
            ``chunk_id -> vector`` for each non-blank chunk.

        Raises
        ------
        EmbeddingUnavailableError
            If no provider is configured or it reports itself unavailable.
        EmbeddingCountMismatchError
            If a batch returns a different number of vectors than it sent.
        DimensionMismatchError
            If the provider returns vectors of inconsistent length.
        EmbeddingProviderError
            On any other provider failure.
        """
        provider = self._require_provider()

        pending = [c for c in chunks if c.content.strip()]
        if not pending:
            return {}

        start = time.monotonic()
        vectors: dict[str, list[float]] = {}
        batches = [pending[i : i + self._batch_size] for i in range(0, len(pending), self._batch_size)]

        for batch_no, batch in enumerate(batches):
            if batch_no > 0 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

            embeddings = await self._call_provider(provider, [c.content for c in batch])
            if len(embeddings) != len(batch):
                raise EmbeddingCountMismatchError(
                    f"Provider returned {len(embeddings)} vectors for {len(batch)} chunks",
                    provider_name=provider.get_provider_name(),
                )
            for chunk, vector in zip(batch, embeddings, strict=True):
                vectors[chunk.chunk_id] = [float(x) for x in vector]

        self._check_uniform_dimension(vectors)
        logger.info(
            "embeddings_generated",
            provider=provider.get_provider_name(),
            chunks=len(pending),
            skipped_blank=len(chunks) - len(pending),
            batches=len(batches),
            elapsed_seconds=round(time.monotonic() - start, 3),
        )
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query with the same model used for chunks."""
        provider = self._require_provider()
        embeddings = await self._call_provider(provider, [text])
        if len(embeddings) != 1:
            raise EmbeddingCountMismatchError(
                f"Provider returned {len(embeddings)} vectors for 1 query",
                provider_name=provider.get_provider_name(),
            )
        return [float(x) for x in embeddings[0]]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_provider(self) -> IEmbeddingProvider:
        if self._provider is None:
            raise EmbeddingUnavailableError("No embedding provider configured")
        if not self._provider.is_available():
            raise EmbeddingUnavailableError(
                "Embedding provider is not available",
                provider_name=self._provider.get_provider_name(),
            )
        return self._provider

    @staticmethod
    async def _call_provider(provider: IEmbeddingProvider, texts: list[str]) -> list[list[float]]:
        try:
            return await provider.embed(texts)
        except EmbeddingProviderError:
            raise
        except Exception as exc:
            raise EmbeddingProviderError(
                f"Embedding provider call failed: {exc}",
                provider_name=provider.get_provider_name(),
            ) from exc

    def _check_uniform_dimension(self, vectors: dict[str, list[float]]) -> None:
        lengths = {len(v) for v in vectors.values()}
        if len(lengths) > 1 or 0 in lengths:
            raise DimensionMismatchError(
                f"Provider returned vectors of inconsistent dimensions: {sorted(lengths)}",
                provider_name=self.provider_name,
            )
