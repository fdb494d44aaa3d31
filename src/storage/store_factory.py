# src/storage/store_factory.py — v1
"""Factory: instantiate the record store from configuration."""

from __future__ import annotations

from photoingest.config.settings import Settings
from photoingest.storage.base_store import BaseRecordStore


def create_store(settings: Settings | None = None) -> BaseRecordStore:
    """Create the record store named by STORAGE_BACKEND.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Raises:
        ValueError: If the backend is not supported.
    """
    backend = "memory" if settings is None else settings.storage_backend

    if backend == "memory":
        from photoingest.storage.memory_store import MemoryRecordStore
        return MemoryRecordStore()

    if backend == "local":
        from photoingest.storage.local_store import LocalRecordStore
        return LocalRecordStore(root=settings.storage_root)  # type: ignore[union-attr]

    raise ValueError(f"Unsupported storage backend: {backend!r}")
