"""Closed registry of the media kinds the text extractor understands.

Declared MIME types are resolved to a :class:`MediaKind` exactly once, at
the edge of :class:`~src.services.extraction.text_extractor.TextExtractor`.
Everything downstream dispatches on the enum, so adding a format means
adding an enum member, a MIME entry and a strategy, and a missing strategy
shows up as a lookup failure at construction time rather than at upload
time.
"""

from __future__ import annotations

from enum import Enum


class MediaKind(str, Enum):  # noqa: UP042
    """Families of uploads that share one extraction strategy."""

    PDF = "pdf"
    WORD = "word"
    SPREADSHEET = "spreadsheet"
    PRESENTATION = "presentation"
    HTML = "html"
    DELIMITED = "delimited"
    PLAIN = "plain"
    IMAGE = "image"


# Legacy binary Office types are routed to the nearest XML strategy; each
# strategy knows how to fall back for the binary variant.
MIME_TO_KIND: dict[str, MediaKind] = {
    "application/pdf": MediaKind.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": MediaKind.WORD,
    "application/msword": MediaKind.WORD,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": MediaKind.SPREADSHEET,
    "application/vnd.ms-excel": MediaKind.SPREADSHEET,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": MediaKind.PRESENTATION,
    "application/vnd.ms-powerpoint": MediaKind.PRESENTATION,
    "text/html": MediaKind.HTML,
    "application/xhtml+xml": MediaKind.HTML,
    "text/csv": MediaKind.DELIMITED,
    "text/tab-separated-values": MediaKind.DELIMITED,
    "text/plain": MediaKind.PLAIN,
    "text/markdown": MediaKind.PLAIN,
    "application/json": MediaKind.PLAIN,
    "text/xml": MediaKind.PLAIN,
    "application/xml": MediaKind.PLAIN,
    "image/jpeg": MediaKind.IMAGE,
    "image/jpg": MediaKind.IMAGE,
    "image/png": MediaKind.IMAGE,
    "image/gif": MediaKind.IMAGE,
    "image/webp": MediaKind.IMAGE,
    "image/bmp": MediaKind.IMAGE,
    "image/tiff": MediaKind.IMAGE,
}

LEGACY_BINARY_TYPES = frozenset(
    {
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.ms-powerpoint",
    }
)

# File suffixes used when a strategy must hand bytes to an external tool.
MIME_TO_SUFFIX: dict[str, str] = {
    "application/pdf": ".pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ".pptx",
    "application/vnd.ms-powerpoint": ".ppt",
    "text/csv": ".csv",
    "text/plain": ".txt",
    "text/html": ".html",
}


def normalize_media_type(media_type: str | None) -> str:
    """Lower-case a MIME type and drop parameters such as ``; charset=utf-8``."""
    if not media_type:
        return ""
    return media_type.split(";", 1)[0].strip().lower()


def resolve_media_kind(media_type: str | None) -> MediaKind | None:
    """Return the :class:`MediaKind` for a declared MIME type, or ``None`` if unknown."""
    return MIME_TO_KIND.get(normalize_media_type(media_type))


def is_text_like(media_type: str | None) -> bool:
    return normalize_media_type(media_type).startswith("text/")


def is_supported(media_type: str | None) -> bool:
    """Known MIME types and any ``text/*`` type are accepted for ingestion."""
    return resolve_media_kind(media_type) is not None or is_text_like(media_type)


def suffix_for(media_type: str | None) -> str:
    return MIME_TO_SUFFIX.get(normalize_media_type(media_type), ".bin")
