# src/storage/local_store.py — v1
"""Local filesystem record store (STORAGE_BACKEND=local).

Layout under STORAGE_ROOT:
    blobs/<scope>/<timestamp_ms>_<random>_<name>
    records/<scope>/<fingerprint>.json

Records are keyed by fingerprint, so the duplicate lookup is a single
file existence check.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from pathlib import Path

from photoingest.core.errors import DuplicateRecordError, StorageError
from photoingest.core.models import Fingerprint, PersistedRecord
from photoingest.storage.base_store import BaseRecordStore

logger = logging.getLogger(__name__)


def _safe_component(value: str) -> str:
    """Strip path separators so a scope or name cannot escape the root."""
    return value.replace("/", "_").replace("\\", "_").replace("..", "_")


class LocalRecordStore(BaseRecordStore):
    """Filesystem-backed store using JSON files for records."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def put(self, blob: bytes, scope: str, name: str) -> str:
        """Write a blob and return its root-relative locator."""
        locator = (
            f"blobs/{_safe_component(scope)}/"
            f"{time.time_ns() // 1_000_000}_{uuid.uuid4().hex[:8]}_{_safe_component(name)}"
        )
        path = self._root / locator
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(blob)
        except OSError as e:
            raise StorageError(f"Failed to write blob {locator}: {e}") from e
        return locator

    async def get(self, locator: str) -> bytes:
        path = self._root / locator
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read blob {locator}: {e}") from e

    async def query_by_fingerprint(
        self, scope: str, fingerprint: Fingerprint,
    ) -> PersistedRecord | None:
        path = self._record_path(scope, fingerprint)
        if not path.exists():
            return None
        try:
            return PersistedRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable record %s: %s", path, e)
            return None

    async def insert_record(self, record: PersistedRecord) -> None:
        path = self._record_path(record.scope, record.fingerprint)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" mode fails if the file exists; the fingerprint is the key.
            with path.open("x", encoding="utf-8") as fh:
                fh.write(record.model_dump_json(indent=2))
        except FileExistsError:
            raise DuplicateRecordError(record.scope, record.fingerprint.digest) from None
        except OSError as e:
            raise StorageError(f"Failed to insert record {record.record_id}: {e}") from e

    async def list_records(self, scope: str) -> list[PersistedRecord]:
        records: list[PersistedRecord] = []
        scope_dir = self._root / "records" / _safe_component(scope)
        if not scope_dir.is_dir():
            return records

        for path in sorted(scope_dir.glob("*.json")):
            try:
                records.append(
                    PersistedRecord.model_validate(
                        json.loads(path.read_text(encoding="utf-8"))
                    )
                )
            except (OSError, ValueError):
                logger.warning("Skipping unreadable record %s", path)
                continue
        return records

    def _record_path(self, scope: str, fingerprint: Fingerprint) -> Path:
        return self._root / "records" / _safe_component(scope) / f"{fingerprint.digest}.json"
