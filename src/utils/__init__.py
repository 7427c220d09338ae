"""Utility modules for the document retrieval core.

Available utility modules (re-exported here for convenience):

- **errors** -- Exception hierarchy rooted at RetrievalError; the pipeline
  records a failed document's error class name as its ``error_code``.
- **image_preprocessor** -- OpenCV/PIL upscaling and contrast
  normalisation applied to small images before Tesseract OCR.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **temp_files** -- Scoped temporary directories that are always removed.
- **tree_walk** -- Bounded iterative walk collecting string leaves.
"""

# -- Exception hierarchy ---------------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingCountMismatchError,
    EmbeddingProviderError,
    EmbeddingUnavailableError,
    ExtractionFailedError,
    IndexCorruptionError,
    NoChunksProducedError,
    NoExtractableContentError,
    OCRExtractionError,
    RetrievalError,
    StorageError,
    UnsupportedFormatError,
)

# -- Image preprocessing for OCR -------------------------------------------
from src.utils.image_preprocessor import ImagePreprocessor

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Filesystem and tree helpers -------------------------------------------
from src.utils.temp_files import temporary_workspace
from src.utils.tree_walk import collect_string_leaves

__all__ = [
    "ConfigurationError",
    "DimensionMismatchError",
    "EmbeddingCountMismatchError",
    "EmbeddingProviderError",
    "EmbeddingUnavailableError",
    "ExtractionFailedError",
    "ImagePreprocessor",
    "IndexCorruptionError",
    "NoChunksProducedError",
    "NoExtractableContentError",
    "OCRExtractionError",
    "RetrievalError",
    "StorageError",
    "UnsupportedFormatError",
    "collect_string_leaves",
    "configure_logging",
    "get_logger",
    "temporary_workspace",
]
