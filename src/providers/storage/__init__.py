"""Object storage providers for raw upload bytes."""

from src.providers.storage.local_object_storage import LocalObjectStorage

__all__ = ["LocalObjectStorage"]
