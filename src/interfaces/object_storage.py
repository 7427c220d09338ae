"""Abstract base class for object storage of uploaded source files.

Paths are opaque strings to the retrieval core: they are produced by
:meth:`IObjectStorage.upload` and handed back to
:meth:`IObjectStorage.download` when a document is reprocessed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: LocalObjectStorage
# Located in: src/providers/storage/
class IObjectStorage(ABC):
    """Contract for reading and writing raw upload bytes."""

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Return the bytes stored at *path*.

        Raises
        ------
        src.utils.errors.StorageError
            If the object does not exist or cannot be read.
        """

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store *data* at *path* and return the canonical stored path."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local"``."""
