"""Unit tests for LocalObjectStorage."""

from __future__ import annotations

import pytest

from src.providers.storage.local_object_storage import LocalObjectStorage
from src.utils.errors import StorageError


class TestLocalObjectStorage:
    @pytest.mark.asyncio
    async def test_upload_then_download(self, object_storage: LocalObjectStorage) -> None:
        key = await object_storage.upload("tenant-a/doc-1/report.txt", b"hello", "text/plain")

        assert key == "tenant-a/doc-1/report.txt"
        assert await object_storage.download(key) == b"hello"
        assert (object_storage.root / key).is_file()

    @pytest.mark.asyncio
    async def test_leading_slash_stays_inside_root(self, object_storage: LocalObjectStorage) -> None:
        key = await object_storage.upload("/tenant-a/x.bin", b"\x00\x01", "application/octet-stream")

        assert key == "tenant-a/x.bin"

    @pytest.mark.asyncio
    async def test_missing_object(self, object_storage: LocalObjectStorage) -> None:
        with pytest.raises(StorageError, match="not found"):
            await object_storage.download("tenant-a/none.txt")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["../outside.txt", "tenant-a/../../escape.txt", "", "   "])
    async def test_rejects_bad_paths(self, object_storage: LocalObjectStorage, path: str) -> None:
        with pytest.raises(StorageError):
            await object_storage.upload(path, b"data", "text/plain")

    def test_provider_name(self, object_storage: LocalObjectStorage) -> None:
        assert object_storage.get_provider_name() == "local"
