# src/storage/base_store.py — v1
"""Abstract persistence interface: blob storage plus scoped photo records."""

from __future__ import annotations

from abc import ABC, abstractmethod

from photoingest.core.models import Fingerprint, PersistedRecord


class BaseRecordStore(ABC):
    """Unified interface for persistence backends. Every call is user-scoped."""

    @abstractmethod
    async def put(self, blob: bytes, scope: str, name: str) -> str:
        """Store a blob and return its locator.

        Raises:
            StorageError: If the write fails.
        """

    @abstractmethod
    async def get(self, locator: str) -> bytes:
        """Read back a blob by locator."""

    @abstractmethod
    async def query_by_fingerprint(
        self, scope: str, fingerprint: Fingerprint,
    ) -> PersistedRecord | None:
        """Return the record with this fingerprint in the scope, if any."""

    @abstractmethod
    async def insert_record(self, record: PersistedRecord) -> None:
        """Persist a new record.

        Raises:
            DuplicateRecordError: If the fingerprint is already recorded.
            StorageError: If the write fails.
        """

    @abstractmethod
    async def list_records(self, scope: str) -> list[PersistedRecord]:
        """All records in a scope."""
