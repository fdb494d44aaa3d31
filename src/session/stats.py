# src/session/stats.py — v1
"""Session-owned progress counters.

All mutation goes through StatsTracker under an asyncio.Lock, so
concurrent files in a batch never lose an update. Every change publishes
a deep-copied snapshot to the broadcaster.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from photoingest.core.models import FileError, FileOutcome, FileResult, IngestionStats
from photoingest.session.observers import StatsBroadcaster

logger = logging.getLogger(__name__)


class StatsTracker:
    """Owns the live IngestionStats of one session."""

    def __init__(self, broadcaster: StatsBroadcaster | None = None) -> None:
        self._stats = IngestionStats()
        self._lock = asyncio.Lock()
        self._broadcaster = broadcaster or StatsBroadcaster(self.snapshot())

    @property
    def broadcaster(self) -> StatsBroadcaster:
        return self._broadcaster

    def snapshot(self) -> IngestionStats:
        """Immutable copy of the current counters."""
        return self._stats.model_copy(deep=True)

    async def start(self, total: int, start_time: datetime | None = None) -> None:
        async with self._lock:
            self._stats = IngestionStats(
                total=total,
                start_time=start_time or datetime.now(timezone.utc),
            )
            snap = self.snapshot()
        self._broadcaster.publish(snap)

    async def set_current_file(self, filename: str) -> None:
        async with self._lock:
            self._stats.current_file = filename
            snap = self.snapshot()
        self._broadcaster.publish(snap)

    async def record(self, result: FileResult) -> None:
        """Apply one terminal file outcome."""
        async with self._lock:
            stats = self._stats
            stats.processed += 1
            if result.outcome is FileOutcome.SUCCESS:
                stats.successful += 1
                if result.tier is not None:
                    setattr(stats.tiers, result.tier, getattr(stats.tiers, result.tier) + 1)
            elif result.outcome is FileOutcome.SKIPPED:
                stats.skipped += 1
            else:
                stats.failed += 1
                stats.errors.append(
                    FileError(filename=result.filename, error=result.error or "Unknown error")
                )
            if result.quota_exceeded:
                stats.quota_exceeded = True
            snap = self.snapshot()
        self._broadcaster.publish(snap)
        _log_progress(snap)

    async def clear_quota_flag(self) -> None:
        async with self._lock:
            self._stats.quota_exceeded = False
            snap = self.snapshot()
        self._broadcaster.publish(snap)

    async def clear_current_file(self) -> None:
        async with self._lock:
            self._stats.current_file = ""
            snap = self.snapshot()
        self._broadcaster.publish(snap)


def _log_progress(stats: IngestionStats) -> None:
    eta = stats.estimate_seconds_remaining(datetime.now(timezone.utc))
    if eta is None:
        logger.info("Progress %d/%d", stats.processed, stats.total)
    else:
        logger.info(
            "Progress %d/%d, ~%.0fs remaining", stats.processed, stats.total, eta,
        )
