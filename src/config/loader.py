"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml : Static defaults checked into the repo
#   2. .env file          : Local developer overrides (not committed)
#   3. Environment vars   : Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the values
# resolved by Settings on top.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from src.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built Settings; a fresh instance is created when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
        },
        "embedding": {
            "model": settings.openai_embedding_model or "text-embedding-3-small",
            "dimension": settings.embedding_dimension,
            "batch_size": settings.embedding_batch_size,
            "batch_delay": settings.embedding_batch_delay,
            "required": settings.require_embeddings,
            "available_providers": settings.get_available_embedding_providers(),
        },
        "chunking": {
            "max_words": settings.chunk_max_words,
            "overlap_words": settings.chunk_overlap_words,
        },
        "search": {
            "threshold": settings.search_threshold,
            "lexical_gate_min_ratio": settings.lexical_gate_min_ratio,
            "default_limit": settings.search_default_limit,
            "text_fallback": settings.text_search_fallback,
        },
        "storage": {
            "document_db_path": settings.document_db_path,
            "object_storage_root": settings.object_storage_root,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
