"""Text extraction result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExtractionMetadata(BaseModel):
    """How a document's text was obtained.

    ``page_count`` counts whatever unit the format has: PDF pages,
    spreadsheet sheets, or presentation slides.
    """

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="Extraction strategy that produced the text, e.g. 'pdf-render-ocr'.")
    confidence: float | None = Field(
        default=None,
        ge=0.0,
        le=100.0,
        description="OCR confidence (0-100) for recognised text; None for structural formats.",
    )
    page_count: int | None = Field(default=None, ge=0, description="Pages, sheets or slides read.")
    word_count: int = Field(default=0, ge=0)
    includes_notes: bool = Field(default=False, description="Presentation speaker notes were included.")


class ExtractedText(BaseModel):
    """Raw text plus extraction metadata, produced once per ingestion attempt."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: ExtractionMetadata

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()


class OCRPage(BaseModel):
    """Text recognised from a single raster image."""

    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = Field(default=0.0, ge=0.0, le=100.0, description="Mean word confidence (0-100).")
    provider_used: str = ""
    processing_time: float = Field(default=0.0, ge=0.0)
