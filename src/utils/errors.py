"""Custom exception hierarchy for the document retrieval core.

All application exceptions inherit from :class:`RetrievalError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai_embedding", "tesseract", "sqlite") caused the
failure.

The hierarchy is organized by pipeline stage:

    RetrievalError  (base -- catch-all for any retrieval-core error)
    +-- UnsupportedFormatError      (no strategy or fallback can read the type)
    +-- ExtractionFailedError       (corrupt file / strategy chain exhausted)
    +-- OCRExtractionError          (image-to-text recognition failure)
    +-- NoExtractableContentError   (extraction produced only whitespace)
    +-- NoChunksProducedError       (chunker returned zero chunks)
    +-- EmbeddingUnavailableError   (no embedding provider configured)
    +-- EmbeddingProviderError      (embedding API call failed)
    +-- EmbeddingCountMismatchError (vectors returned != chunks submitted)
    +-- DimensionMismatchError      (vector lengths disagree)
    +-- IndexCorruptionError        (HybridIndex internal invariant broken)
    +-- StorageError                (object storage / relational store)
    +-- ConfigurationError          (invalid settings at startup)

The orchestrator converts every subclass into a ``failed`` processing
status whose ``error_code`` is the exception class name, so callers poll
status rather than catching these from a long-running ingestion.
"""


class RetrievalError(Exception):
    """Base exception for all retrieval-core errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    ``__str__`` prefixes the provider name in brackets for log output,
    e.g. ``[openai_embedding] API error: timeout``.
    """

    def __init__(
        self,
        message: str = "An unexpected retrieval error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class UnsupportedFormatError(RetrievalError):
    """Raised when no extraction strategy (including the raw-text fallback) can read a type."""

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionFailedError(RetrievalError):
    """Raised on hard extraction errors: corrupt files or an exhausted fallback chain."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OCRExtractionError(RetrievalError):
    """Raised when OCR text recognition fails on a rendered page or image."""

    def __init__(
        self,
        message: str = "OCR text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoExtractableContentError(RetrievalError):
    """Raised when a document's extracted text is empty or whitespace only."""

    def __init__(
        self,
        message: str = "No extractable text content found in document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoChunksProducedError(RetrievalError):
    """Raised when chunking yields zero chunks for a document."""

    def __init__(
        self,
        message: str = "No text chunks could be created from document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding errors
# ---------------------------------------------------------------------------

class EmbeddingUnavailableError(RetrievalError):
    """Raised when embeddings are requested but no provider is configured.

    Ingestion catches this to degrade to lexical-only indexing unless the
    deployment requires embeddings.
    """

    def __init__(
        self,
        message: str = "Embedding provider is not configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingProviderError(RetrievalError):
    """Raised when the embedding provider call fails.  The whole batch is discarded."""

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingCountMismatchError(RetrievalError):
    """Raised when the number of returned vectors differs from the chunks submitted."""

    def __init__(
        self,
        message: str = "Embedding count does not match chunk count",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DimensionMismatchError(RetrievalError):
    """Raised when two vectors (or a vector and the index) disagree on dimension."""

    def __init__(
        self,
        message: str = "Vector dimensions do not match",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Index / storage / configuration errors
# ---------------------------------------------------------------------------

class IndexCorruptionError(RetrievalError):
    """Raised when a HybridIndex invariant is violated.

    Should never surface in correct operation; seeing one means the
    in-memory index must be rebuilt from the durable store.
    """

    def __init__(
        self,
        message: str = "Hybrid index invariant violated",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(RetrievalError):
    """Raised when object storage or the relational store cannot complete an operation."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(RetrievalError):
    """Raised when settings are invalid (e.g. chunk overlap >= window size)."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
