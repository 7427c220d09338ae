"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# Values are read from TWO sources (in priority order):
#
#   1. **Environment variables**: e.g. OPENAI_API_KEY=sk-abc123
#      (highest priority, always wins)
#   2. **.env file**: key=value lines in the project root .env file
#
# Field `chunk_max_words` maps to env var `CHUNK_MAX_WORDS`, and so on.
#
# The retrieval thresholds below were tuned empirically against short,
# entity-bearing chat queries.  They are plain settings so a deployment
# can retune them without a code change.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Retrieval core settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding Providers ===
    # Empty key = "not configured" → the provider chain skips OpenAI and
    # falls through to Ollama, then to lexical-only indexing.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, Azure proxy, ...)
    openai_embedding_model: str = ""  # Empty → text-embedding-3-small
    ollama_base_url: str = ""  # e.g. http://localhost:11434 to enable local embeddings
    ollama_embedding_model: str = "nomic-embed-text"
    embedding_dimension: int = 1536
    embedding_batch_size: int = 100
    embedding_batch_delay: float = 0.1  # seconds between provider batches
    require_embeddings: bool = False  # True → fail documents instead of lexical-only indexing

    # === Chunking ===
    chunk_max_words: int = 750
    chunk_overlap_words: int = 150

    # === Hybrid Search ===
    search_threshold: float = 0.45
    vector_threshold_factor: float = 0.8  # vector pass admits sim >= threshold * factor
    vector_candidate_cap: int = 50
    keyword_min_significant_ratio: float = 0.6
    keyword_min_normalized_score: float = 0.5
    lexical_gate_min_ratio: float = 0.6
    fusion_vector_weight: float = 0.7
    fusion_keyword_weight: float = 0.3
    fusion_keyword_only_weight: float = 0.5
    search_default_limit: int = 20
    text_search_fallback: bool = True  # search stored document text when the index cannot answer
    context_max_results: int = 5

    # === Extraction ===
    pdf_max_pages: int = 50
    pdf_render_dpi: int = 200
    ocr_min_width: int = 1000
    ocr_target_height: int = 1200
    presentation_min_chars: int = 10
    structure_max_depth: int = 32

    # === Storage ===
    document_db_path: str = "data/documents.db"
    object_storage_root: str = "data/uploads"

    # === Ingestion Queue ===
    ingestion_workers: int = 2
    ingestion_queue_size: int = 100

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_chunk_window(self) -> "Settings":
        # The sliding window only advances when overlap < window size.
        if self.chunk_max_words < 1:
            raise ValueError("chunk_max_words must be at least 1")
        if not 0 <= self.chunk_overlap_words < self.chunk_max_words:
            raise ValueError(
                "chunk_overlap_words must be >= 0 and strictly less than chunk_max_words "
                f"(got overlap={self.chunk_overlap_words}, max={self.chunk_max_words})"
            )
        return self

    def get_available_embedding_providers(self) -> list[str]:
        """Return the embedding provider names that have configuration present."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
