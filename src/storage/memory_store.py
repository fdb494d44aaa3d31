# src/storage/memory_store.py — v1
"""In-process record store (default STORAGE_BACKEND=memory).

Keeps blobs and records in dicts. Used for tests and dry runs.
"""

from __future__ import annotations

import itertools

from photoingest.core.errors import DuplicateRecordError, StorageError
from photoingest.core.models import Fingerprint, PersistedRecord
from photoingest.storage.base_store import BaseRecordStore


class MemoryRecordStore(BaseRecordStore):
    """Dict-backed store keyed by (scope, fingerprint digest)."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._records: dict[tuple[str, str], PersistedRecord] = {}
        self._counter = itertools.count(1)

    async def put(self, blob: bytes, scope: str, name: str) -> str:
        locator = f"{scope}/{next(self._counter):06d}_{name}"
        self._blobs[locator] = blob
        return locator

    async def get(self, locator: str) -> bytes:
        try:
            return self._blobs[locator]
        except KeyError:
            raise StorageError(f"No blob at {locator}") from None

    async def query_by_fingerprint(
        self, scope: str, fingerprint: Fingerprint,
    ) -> PersistedRecord | None:
        return self._records.get((scope, fingerprint.digest))

    async def insert_record(self, record: PersistedRecord) -> None:
        key = (record.scope, record.fingerprint.digest)
        if key in self._records:
            raise DuplicateRecordError(record.scope, record.fingerprint.digest)
        self._records[key] = record

    async def list_records(self, scope: str) -> list[PersistedRecord]:
        return [r for (s, _), r in self._records.items() if s == scope]

    @property
    def blob_count(self) -> int:
        return len(self._blobs)
