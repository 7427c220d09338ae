"""Unit tests for EmbeddingGenerator batching and cosine_similarity."""

from __future__ import annotations

import math
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.services.ingestion.embedding_generator import EmbeddingGenerator, cosine_similarity
from src.utils.errors import (
    DimensionMismatchError,
    EmbeddingCountMismatchError,
    EmbeddingProviderError,
    EmbeddingUnavailableError,
)
from tests.conftest import DroppingEmbeddingProvider, FakeEmbeddingProvider, make_chunk

# ======================================================================
# cosine_similarity
# ======================================================================


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_opposite_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == pytest.approx(0.0)

    def test_scale_invariant(self) -> None:
        a = [0.3, -1.2, 4.0]
        assert cosine_similarity(a, [x * 7 for x in a]) == pytest.approx(1.0)

    def test_zero_vector_is_zero(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_symmetric(self) -> None:
        a, b = [1.0, 2.0, 0.5], [0.2, -1.0, 3.0]
        assert math.isclose(cosine_similarity(a, b), cosine_similarity(b, a))

    def test_length_mismatch_raises(self) -> None:
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


# ======================================================================
# EmbeddingGenerator
# ======================================================================


class TestEmbed:
    @pytest.mark.asyncio
    async def test_maps_vectors_by_chunk_id(self) -> None:
        provider = FakeEmbeddingProvider()
        generator = EmbeddingGenerator(provider, batch_delay=0.0)
        chunks = [make_chunk(f"text number {i}", index=i, embed=False) for i in range(3)]

        vectors = await generator.embed(chunks)

        assert set(vectors) == {c.chunk_id for c in chunks}
        assert all(len(v) == provider.dimension for v in vectors.values())

    @pytest.mark.asyncio
    async def test_batches_by_batch_size(self) -> None:
        provider = FakeEmbeddingProvider()
        generator = EmbeddingGenerator(provider, batch_size=2, batch_delay=0.0)
        chunks = [make_chunk(f"chunk {i}", index=i, embed=False) for i in range(5)]

        await generator.embed(chunks)

        assert [len(call) for call in provider.calls] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_sleeps_between_batches_only(self) -> None:
        provider = FakeEmbeddingProvider()
        generator = EmbeddingGenerator(provider, batch_size=2, batch_delay=0.1)
        chunks = [make_chunk(f"chunk {i}", index=i, embed=False) for i in range(5)]

        with patch(
            "src.services.ingestion.embedding_generator.asyncio.sleep",
            new_callable=AsyncMock,
        ) as mock_sleep:
            await generator.embed(chunks)

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_calls(self) -> None:
        provider = FakeEmbeddingProvider()
        generator = EmbeddingGenerator(provider, batch_delay=0.0)

        assert await generator.embed([]) == {}
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_count_mismatch_raises(self) -> None:
        generator = EmbeddingGenerator(DroppingEmbeddingProvider(), batch_delay=0.0)
        chunks = [make_chunk(f"chunk {i}", index=i, embed=False) for i in range(3)]

        with pytest.raises(EmbeddingCountMismatchError):
            await generator.embed(chunks)

    @pytest.mark.asyncio
    async def test_inconsistent_dimensions_raise(self) -> None:
        provider = MagicMock(spec=IEmbeddingProvider)
        provider.is_available.return_value = True
        provider.get_provider_name.return_value = "ragged"
        provider.embed = AsyncMock(return_value=[[0.1, 0.2], [0.1, 0.2, 0.3]])
        generator = EmbeddingGenerator(provider, batch_delay=0.0)
        chunks = [make_chunk(f"chunk {i}", index=i, embed=False) for i in range(2)]

        with pytest.raises(DimensionMismatchError):
            await generator.embed(chunks)

    @pytest.mark.asyncio
    async def test_provider_exception_is_wrapped(self) -> None:
        provider = MagicMock(spec=IEmbeddingProvider)
        provider.is_available.return_value = True
        provider.get_provider_name.return_value = "broken"
        provider.embed = AsyncMock(side_effect=ConnectionError("reset by peer"))
        generator = EmbeddingGenerator(provider, batch_delay=0.0)

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await generator.embed([make_chunk("anything", embed=False)])

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.provider_name == "broken"


class TestAvailability:
    @pytest.mark.asyncio
    async def test_no_provider_raises_unavailable(self) -> None:
        generator = EmbeddingGenerator(None)

        assert generator.is_available() is False
        with pytest.raises(EmbeddingUnavailableError):
            await generator.embed([make_chunk("text", embed=False)])

    @pytest.mark.asyncio
    async def test_unavailable_provider_raises(self) -> None:
        generator = EmbeddingGenerator(FakeEmbeddingProvider(available=False))

        with pytest.raises(EmbeddingUnavailableError):
            await generator.embed_query("hello")

    def test_dimension_falls_back_to_default(self) -> None:
        assert EmbeddingGenerator(None, default_dimension=384).dimension == 384
        assert EmbeddingGenerator(FakeEmbeddingProvider(dimension=32)).dimension == 32


class TestEmbedQuery:
    @pytest.mark.asyncio
    async def test_returns_single_vector(self) -> None:
        provider = FakeEmbeddingProvider()
        generator = EmbeddingGenerator(provider)

        vector = await generator.embed_query("lahore weather")

        assert len(vector) == provider.dimension
        assert provider.calls == [["lahore weather"]]
