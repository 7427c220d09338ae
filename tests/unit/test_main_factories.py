"""Unit tests for the service assembly in src/main.py.

Covers the embedding provider fallback chain and the wiring produced by
build_services, with no network access or API keys required.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from src.config.settings import Settings
from src.main import _build_embedding_provider, build_services, close_services, open_services
from src.pipeline.ingestion_queue import IngestionQueue
from src.pipeline.orchestrator import IngestionOrchestrator
from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.services.retrieval.document_search import DocumentSearchService
from src.services.retrieval.hybrid_index import HybridIndex
from tests.conftest import EMBEDDING_DIM, FakeEmbeddingProvider, make_chunk


def _settings(**overrides) -> Settings:
    defaults = {
        "_env_file": None,
        "openai_api_key": "",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "ollama_base_url": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _build_embedding_provider
# ======================================================================


class TestBuildEmbeddingProvider:
    def test_openai_first(self) -> None:
        result = _build_embedding_provider(
            _settings(openai_api_key="sk-test", ollama_base_url="http://localhost:11434")
        )

        assert isinstance(result, OpenAIEmbeddingProvider)

    def test_ollama_when_no_key(self) -> None:
        with patch(
            "src.providers.embedding.ollama_embedding_provider.httpx.get",
            return_value=MagicMock(status_code=200),
        ):
            result = _build_embedding_provider(_settings(ollama_base_url="http://localhost:11434"))

        assert isinstance(result, OllamaEmbeddingProvider)

    def test_unreachable_ollama_gives_none(self) -> None:
        with patch(
            "src.providers.embedding.ollama_embedding_provider.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            assert _build_embedding_provider(_settings(ollama_base_url="http://localhost:11434")) is None

    def test_nothing_configured_gives_none(self) -> None:
        assert _build_embedding_provider(_settings()) is None


# ======================================================================
# build_services / open_services / close_services
# ======================================================================


class TestBuildServices:
    def test_returns_every_component(self, settings: Settings, fake_provider: FakeEmbeddingProvider) -> None:
        services = build_services(settings, embedding_provider=fake_provider)

        assert set(services) == {
            "settings",
            "store",
            "object_storage",
            "extractor",
            "chunker",
            "embedder",
            "index",
            "search",
            "assembler",
            "tracker",
            "orchestrator",
            "queue",
        }
        assert services["settings"] is settings
        assert isinstance(services["orchestrator"], IngestionOrchestrator)
        assert isinstance(services["queue"], IngestionQueue)
        assert isinstance(services["index"], HybridIndex)
        assert isinstance(services["search"], DocumentSearchService)
        assert services["index"].dimension == EMBEDDING_DIM
        assert services["embedder"].provider_name == "fake-embedding"

    def test_no_provider_means_lexical_only_embedder(self, settings: Settings) -> None:
        services = build_services(settings)

        assert services["embedder"].is_available() is False

    @pytest.mark.asyncio
    async def test_open_loads_index_from_store(self, settings: Settings, fake_provider: FakeEmbeddingProvider) -> None:
        services = build_services(settings, embedding_provider=fake_provider)
        await services["store"].initialize()
        await services["store"].add_chunks([make_chunk("stored chunk about invoices")])

        await open_services(services)

        assert services["index"].stats().total_chunks == 1
        await close_services(services)
        assert services["index"].stats().total_chunks == 0

    @pytest.mark.asyncio
    async def test_close_stops_running_queue(self, settings: Settings, fake_provider: FakeEmbeddingProvider) -> None:
        services = build_services(settings, embedding_provider=fake_provider)
        await open_services(services)
        services["queue"].start()

        await close_services(services)

        assert services["queue"].running is False
