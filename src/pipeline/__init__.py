"""Pipeline orchestration components for document ingestion."""

from src.pipeline.ingestion_queue import IngestionQueue
from src.pipeline.orchestrator import IngestionOrchestrator
from src.pipeline.status_tracker import StatusTracker

__all__ = [
    "IngestionOrchestrator",
    "IngestionQueue",
    "StatusTracker",
]
