"""Per-format extraction strategies used by the text extractor."""

from src.services.extraction.processors.image_processor import ImageProcessor
from src.services.extraction.processors.markup_processor import HTMLProcessor, PlainTextProcessor
from src.services.extraction.processors.pdf_processor import PDFProcessor
from src.services.extraction.processors.presentation_processor import PresentationProcessor
from src.services.extraction.processors.tabular_processor import (
    DelimitedTextProcessor,
    SpreadsheetProcessor,
)
from src.services.extraction.processors.word_processor import WordProcessor

__all__ = [
    "DelimitedTextProcessor",
    "HTMLProcessor",
    "ImageProcessor",
    "PDFProcessor",
    "PlainTextProcessor",
    "PresentationProcessor",
    "SpreadsheetProcessor",
    "WordProcessor",
]
