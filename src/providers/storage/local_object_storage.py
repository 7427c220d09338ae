"""Local-filesystem object storage for uploaded source files.

Objects live under a single root directory (``data/uploads`` by default).
Keys are relative POSIX-style paths such as ``tenant-1/doc-42/report.pdf``;
any key that would resolve outside the root is rejected.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from src.interfaces.object_storage import IObjectStorage
from src.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_ROOT = Path("data/uploads")


class LocalObjectStorage(IObjectStorage):
    """Stores upload bytes as files beneath *root*."""

    def __init__(self, root: str | Path = _DEFAULT_ROOT) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Object not found: {path}", provider_name=self.get_provider_name())
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            raise StorageError(f"Cannot read {path}: {exc}", provider_name=self.get_provider_name()) from exc

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}", provider_name=self.get_provider_name()) from exc

        key = target.relative_to(self._root).as_posix()
        logger.info("object_stored", path=key, bytes=len(data), content_type=content_type)
        return key

    def get_provider_name(self) -> str:
        return "local"

    def _resolve(self, path: str) -> Path:
        if not path or not path.strip():
            raise StorageError("Empty object path", provider_name=self.get_provider_name())
        target = (self._root / path.lstrip("/")).resolve()
        if target != self._root and self._root not in target.parents:
            raise StorageError(
                f"Object path escapes storage root: {path}",
                provider_name=self.get_provider_name(),
            )
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
