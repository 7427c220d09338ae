"""Document lifecycle models for the ingestion pipeline.

Defines Pydantic v2 models for uploaded documents and their per-document
processing state machine.  All models use frozen config; state transitions
produce new instances via ``model_copy(update={...})``.

State machine::

    pending ──► processing{extracting → chunking → embedding → indexing} ──► completed
                        │
                        └──────────────► failed{reason}

``completed`` and ``failed`` are terminal.  Reprocessing moves a terminal
document back to ``pending`` after its previous chunks are wiped.  Only
the orchestrator (src/pipeline/orchestrator.py) creates new statuses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class ProcessingState(str, Enum):  # noqa: UP042
    """Top-level states of a document's processing run."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingState.COMPLETED, ProcessingState.FAILED)


class ProcessingStage(str, Enum):  # noqa: UP042
    """Sub-stages of ``processing``, in pipeline order."""

    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    INDEXING = "indexing"


# Progress reported when a stage begins.  A failed run keeps the progress
# of the last stage it reached.
STAGE_PROGRESS: dict[ProcessingStage, float] = {
    ProcessingStage.EXTRACTING: 10.0,
    ProcessingStage.CHUNKING: 30.0,
    ProcessingStage.EMBEDDING: 50.0,
    ProcessingStage.INDEXING: 80.0,
}


class ProcessingStatus(BaseModel):
    """Snapshot of a document's position in the processing state machine."""

    model_config = ConfigDict(frozen=True)

    state: ProcessingState = Field(
        default=ProcessingState.PENDING,
        description="Current top-level state.",
    )
    stage: ProcessingStage | None = Field(
        default=None,
        description="Active stage while processing; the stage it froze at when failed.",
    )
    progress: float = Field(default=0.0, ge=0.0, le=100.0, description="Completion percentage.")
    reason: str | None = Field(default=None, description="Human-readable failure reason.")
    error_code: str | None = Field(
        default=None,
        description="Exception class name that caused the failure, e.g. 'NoChunksProducedError'.",
    )
    updated_at: datetime = Field(default_factory=_utcnow, description="UTC time of this snapshot.")

    @classmethod
    def pending(cls) -> ProcessingStatus:
        return cls(state=ProcessingState.PENDING)

    @classmethod
    def processing(cls, stage: ProcessingStage) -> ProcessingStatus:
        return cls(
            state=ProcessingState.PROCESSING,
            stage=stage,
            progress=STAGE_PROGRESS[stage],
        )

    @classmethod
    def completed(cls) -> ProcessingStatus:
        return cls(state=ProcessingState.COMPLETED, progress=100.0)

    def fail(self, reason: str, error_code: str | None = None) -> ProcessingStatus:
        """Return a failed copy that keeps this status's stage and progress."""
        return self.model_copy(
            update={
                "state": ProcessingState.FAILED,
                "reason": reason,
                "error_code": error_code,
                "updated_at": _utcnow(),
            }
        )


class Document(BaseModel):
    """An uploaded file owned by exactly one tenant.

    ``storage_path`` is an opaque object-storage key; the core never
    interprets it beyond passing it back to
    :class:`~src.interfaces.object_storage.IObjectStorage`.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Unique document identifier.")
    tenant_id: str = Field(description="Owning tenant (user) identifier.")
    filename: str = Field(description="Original upload filename, used for citations.")
    media_type: str = Field(description="Declared MIME type of the upload.")
    byte_length: int = Field(default=0, ge=0, description="Raw byte length of the upload.")
    storage_path: str | None = Field(default=None, description="Object-storage location of the source bytes.")
    extracted_text: str | None = Field(
        default=None,
        description="Text produced by the last extraction, kept for audit and reprocessing.",
    )
    status: ProcessingStatus = Field(default_factory=ProcessingStatus.pending)
    created_at: datetime = Field(default_factory=_utcnow)


class ProcessingResult(BaseModel):
    """Outcome of a single ``process_document`` run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: ProcessingStatus
    chunk_count: int = Field(default=0, ge=0, description="Chunks produced by the chunker.")
    indexed_count: int = Field(default=0, ge=0, description="Chunks added to the hybrid index.")
    lexical_only: bool = Field(
        default=False,
        description="True when chunks were indexed without embeddings.",
    )
    elapsed_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def succeeded(self) -> bool:
        return self.status.state == ProcessingState.COMPLETED


class ProcessingStats(BaseModel):
    """Per-state document counts, optionally scoped to one tenant."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
