"""Bounded work queue that hands uploads to the orchestrator.

Upload handlers call :meth:`IngestionQueue.submit` and return immediately;
a fixed pool of worker tasks pulls ``(document, data)`` pairs off an
``asyncio.Queue`` and runs them through
:meth:`~src.pipeline.orchestrator.IngestionOrchestrator.process_document`.

A full queue makes ``submit`` wait, which pushes back on the uploader
instead of spawning unbounded background tasks.  Every outcome, including
a crash inside a worker, lands in :attr:`IngestionQueue.results`.
"""

from __future__ import annotations

import asyncio

import structlog

from src.models.document import Document, ProcessingResult, ProcessingStatus
from src.pipeline.orchestrator import IngestionOrchestrator
from src.utils.logging import get_logger


class IngestionQueue:
    """Processes submitted documents with a fixed number of workers.

    Parameters
    ----------
    orchestrator:
        Runs each document.
    workers:
        Number of concurrent worker tasks.
    maxsize:
        Queue capacity; ``submit`` waits while the queue is full.
    """

    def __init__(self, orchestrator: IngestionOrchestrator, workers: int = 2, maxsize: int = 100) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self._orchestrator = orchestrator
        self._worker_count = workers
        self._queue: asyncio.Queue[tuple[Document, bytes]] = asyncio.Queue(maxsize=maxsize)
        self._workers: list[asyncio.Task] = []
        self.results: dict[str, ProcessingResult] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Spawn the worker tasks.  Must be called from a running event loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"ingestion-worker-{n}")
            for n in range(self._worker_count)
        ]
        self._logger.info("ingestion_queue_started", workers=self._worker_count)

    async def submit(self, document: Document, data: bytes) -> None:
        """Enqueue a document, waiting for space when the queue is full."""
        if not self._workers:
            raise RuntimeError("IngestionQueue.start() must be called before submit()")
        await self._queue.put((document, data))
        self._logger.debug("document_enqueued", document_id=document.document_id, pending=self._queue.qsize())

    async def join(self) -> None:
        """Wait until every submitted document has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Drain the queue, then cancel the workers."""
        if not self._workers:
            return
        await self._queue.join()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._logger.info("ingestion_queue_stopped", processed=len(self.results))

    async def _worker(self, number: int) -> None:
        while True:
            document, data = await self._queue.get()
            try:
                self.results[document.document_id] = await self._process(number, document, data)
            finally:
                self._queue.task_done()

    async def _process(self, number: int, document: Document, data: bytes) -> ProcessingResult:
        try:
            return await self._orchestrator.process_document(document, data)
        except Exception as exc:
            self._logger.error(
                "ingestion_worker_error",
                worker=number,
                document_id=document.document_id,
                error=str(exc),
            )
            return ProcessingResult(
                document_id=document.document_id,
                status=ProcessingStatus.pending().fail(str(exc), error_code=type(exc).__name__),
            )
