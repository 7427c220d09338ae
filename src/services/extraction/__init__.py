"""Text extraction: MIME dispatch, per-format processors, and fallbacks."""

from src.services.extraction.media_kinds import MediaKind, is_supported, resolve_media_kind
from src.services.extraction.office_converter import OfficeConverter
from src.services.extraction.text_extractor import TextExtractor

__all__ = [
    "MediaKind",
    "OfficeConverter",
    "TextExtractor",
    "is_supported",
    "resolve_media_kind",
]
