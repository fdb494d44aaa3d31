# src/session/scheduler.py — v1
"""Batch scheduler: fixed-size concurrent batches with pacing.

Candidates are partitioned in selection order. Files inside a batch run
concurrently; the next batch starts only after every file of the current
one reached a terminal outcome and the inter-batch delay elapsed. Pause
and cancel requests take effect at batch boundaries, so an in-flight
batch is never interrupted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Sequence, TypeVar

from photoingest.analyzer.retry import SleepFn
from photoingest.core.models import Candidate, FileResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StopReason(str, Enum):
    """Why the scheduler stopped pulling batches."""

    EXHAUSTED = "exhausted"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    QUOTA_EXCEEDED = "quota_exceeded"


class RunControl:
    """Pause and cancel flags polled at batch boundaries."""

    def __init__(self) -> None:
        self.pause_requested = False
        self.cancel_requested = False

    def reset(self) -> None:
        self.pause_requested = False
        self.cancel_requested = False

    def stop_reason(self) -> StopReason | None:
        if self.cancel_requested:
            return StopReason.CANCELLED
        if self.pause_requested:
            return StopReason.PAUSED
        return None


@dataclass
class ScheduleOutcome:
    """Result of one scheduler run."""

    stop_reason: StopReason
    batches_run: int
    results: list[FileResult]


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split into consecutive chunks of ``size``; the last may be shorter."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchScheduler:
    """Drives the work queue in batches.

    Args:
        batch_size: Files per concurrent batch.
        inter_batch_delay_s: Pause between consecutive batches.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        batch_size: int = 10,
        inter_batch_delay_s: float = 0.5,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._batch_size = batch_size
        self._delay_s = inter_batch_delay_s
        self._sleep = sleep

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def run(
        self,
        queue: Sequence[Candidate],
        handle: Callable[[Candidate], Awaitable[FileResult]],
        control: RunControl,
    ) -> ScheduleOutcome:
        """Run ``handle`` over the queue until it is exhausted or stopped.

        ``handle`` is expected to convert per-file failures into results.
        Anything it raises anyway is re-raised once its batch has finished.
        """
        batches = partition(queue, self._batch_size)
        results: list[FileResult] = []
        batches_run = 0

        for index, batch in enumerate(batches):
            reason = control.stop_reason()
            if reason is None and index > 0 and self._delay_s > 0:
                await self._sleep(self._delay_s)
                reason = control.stop_reason()
            if reason is not None:
                logger.info(
                    "Stopping before batch %d/%d: %s",
                    index + 1, len(batches), reason.value,
                )
                return ScheduleOutcome(reason, batches_run, results)

            logger.info(
                "Batch %d/%d: %d files", index + 1, len(batches), len(batch),
            )
            outcomes = await asyncio.gather(
                *(handle(c) for c in batch), return_exceptions=True,
            )
            batches_run += 1

            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
                results.append(outcome)

            if any(r.quota_exceeded for r in results[-len(batch):]):
                logger.warning("Quota exceeded in batch %d, halting", index + 1)
                return ScheduleOutcome(StopReason.QUOTA_EXCEEDED, batches_run, results)

        # A cancel that arrived during the final batch still wins over completion.
        if control.cancel_requested:
            return ScheduleOutcome(StopReason.CANCELLED, batches_run, results)
        return ScheduleOutcome(StopReason.EXHAUSTED, batches_run, results)
