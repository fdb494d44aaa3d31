# src/ingest/dedup.py — v1
"""Duplicate index: fingerprint lookup against persisted records.

Read-only against the record store. Called once during the dry-run scan
(estimate) and once right before upload (authoritative).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from photoingest.core.models import Fingerprint, PersistedRecord
    from photoingest.storage.base_store import BaseRecordStore

logger = logging.getLogger(__name__)


class DuplicateIndex:
    """Answer whether a fingerprint already exists in a user scope."""

    def __init__(self, store: BaseRecordStore) -> None:
        self._store = store

    async def lookup(
        self, scope: str, fingerprint: Fingerprint,
    ) -> PersistedRecord | None:
        """Return the existing record with this fingerprint, if any."""
        record = await self._store.query_by_fingerprint(scope, fingerprint)
        if record is not None:
            logger.debug(
                "Duplicate of %s (record %s) in scope %s",
                fingerprint.digest[:12], record.record_id, scope,
            )
        return record

    async def contains(self, scope: str, fingerprint: Fingerprint) -> bool:
        return await self.lookup(scope, fingerprint) is not None
