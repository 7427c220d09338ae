"""Configuration: environment-backed :class:`Settings` and the YAML config loader."""

from src.config.loader import load_config
from src.config.settings import Settings

__all__ = ["Settings", "load_config"]
