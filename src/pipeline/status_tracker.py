"""Per-document processing status with callback-based listener notification.

Holds the latest :class:`~src.models.document.ProcessingStatus` for every
document the orchestrator has touched and broadcasts each change to
registered listeners.

# ─── HOW STATUS TRACKING WORKS ─────────────────────────────────────────
#
#   Orchestrator ──update()──→ StatusTracker ──callback()──→ upload UI poller
#                                            ──→ (any other listener)
#
#   1. The orchestrator calls tracker.update(document_id, status)
#   2. StatusTracker stores the snapshot and calls the listeners registered
#      for that document, then the wildcard ("*") listeners
#   3. Listeners may be sync or async; async ones are awaited
#
# Listener errors are logged and skipped, so a broken listener never
# fails a document.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from src.models.document import ProcessingStatus
from src.utils.logging import get_logger

ALL_DOCUMENTS = "*"


class StatusTracker:
    """Tracks and broadcasts document processing status via callbacks.

    Callbacks receive ``(document_id, status)``.  Register under a document
    id to follow one document, or under :data:`ALL_DOCUMENTS` to follow
    every document.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, ProcessingStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(self, document_id: str, status: ProcessingStatus) -> None:
        """Record *status* for *document_id* and notify listeners."""
        self._statuses[document_id] = status

        self._logger.debug(
            "status_update",
            document_id=document_id,
            state=status.state.value,
            stage=status.stage.value if status.stage else None,
            progress=round(status.progress, 1),
        )

        await self._notify_listeners(document_id, status)

    def get_status(self, document_id: str) -> ProcessingStatus | None:
        return self._statuses.get(document_id)

    def forget(self, document_id: str) -> None:
        """Drop the snapshot and per-document listeners of a removed document."""
        self._statuses.pop(document_id, None)
        self._listeners.pop(document_id, None)

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register a callback for one document, or for all via ``"*"``.

        Parameters
        ----------
        document_id:
            The document to follow, or :data:`ALL_DOCUMENTS`.
        callback:
            An async or sync callable accepting ``(document_id, status)``.
        """
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                document_id=document_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, document_id: str, status: ProcessingStatus) -> None:
        callbacks = [*self._listeners.get(document_id, []), *self._listeners.get(ALL_DOCUMENTS, [])]
        for callback in callbacks:
            try:
                result = callback(document_id, status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
