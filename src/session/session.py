# src/session/session.py — v1
"""Ingestion session: lifecycle state machine over one candidate selection.

States:
  idle -> scanning -> scanned -> running <-> paused -> complete | cancelled

scan() never mutates persisted state. start() and resume() return the
asyncio.Task running the scheduler; pause() and cancel() only raise flags
that the scheduler honors at the next batch boundary. Resume re-derives
the queue from candidates that have no terminal outcome yet, so no file
is processed twice.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Sequence

from photoingest.analyzer.retry import RetryingAnalyzer, RetryPolicy, SleepFn
from photoingest.config.settings import load_settings
from photoingest.core.errors import InvalidSessionStateError
from photoingest.core.models import (
    Candidate,
    FileOutcome,
    FileResult,
    FilterOptions,
    IngestionStats,
    ScanReport,
    SessionResult,
    SessionStatus,
)
from photoingest.imaging.normalizer import FormatNormalizer
from photoingest.ingest.dedup import DuplicateIndex
from photoingest.ingest.preflight import PreflightFilter
from photoingest.ingest.scanner import scan_candidates
from photoingest.logging.context import set_file_context, set_session_context
from photoingest.session.file_processor import FileProcessor
from photoingest.session.scheduler import BatchScheduler, RunControl, StopReason
from photoingest.session.stats import StatsTracker

if TYPE_CHECKING:
    from photoingest.analyzer.base_client import BaseAnalyzerClient
    from photoingest.config.settings import Settings
    from photoingest.session.observers import StatsSubscription
    from photoingest.storage.base_store import BaseRecordStore

logger = logging.getLogger(__name__)

_STOP_STATUS = {
    StopReason.EXHAUSTED: SessionStatus.COMPLETE,
    StopReason.CANCELLED: SessionStatus.CANCELLED,
    StopReason.PAUSED: SessionStatus.PAUSED,
    StopReason.QUOTA_EXCEEDED: SessionStatus.PAUSED,
}


class IngestionSession:
    """One bulk ingestion run for a single user scope.

    Args:
        scope: Owner of every record this session writes.
        store: Blob and record persistence.
        analyzer: Remote analyzer client (wrapped with retries here).
        settings: Application settings. Loaded from the environment if None.
        sleep: Injected into retry backoff and batch pacing.
        session_id: Optional fixed identifier.
    """

    def __init__(
        self,
        scope: str,
        store: BaseRecordStore,
        analyzer: BaseAnalyzerClient,
        settings: Settings | None = None,
        sleep: SleepFn = asyncio.sleep,
        session_id: str | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self.scope = scope
        self.session_id = session_id or uuid.uuid4().hex

        self._status = SessionStatus.IDLE
        self._candidates: list[Candidate] = []
        self._options: FilterOptions = self._settings.to_filter_options()
        self._scan_report: ScanReport | None = None
        self._outcomes: dict[str, FileOutcome] = {}
        self._batches_run = 0
        self._last_stop: StopReason | None = None

        self._tracker = StatsTracker()
        self._control = RunControl()
        self._task: asyncio.Task[SessionResult] | None = None
        self._minimized = False
        self._view: StatsSubscription | None = None

        self._preflight = PreflightFilter(DuplicateIndex(store))
        self._processor = FileProcessor(
            settings=self._settings,
            store=store,
            preflight=self._preflight,
            normalizer=FormatNormalizer(jpeg_quality=self._settings.heic_jpeg_quality),
            analyzer=RetryingAnalyzer(
                analyzer, RetryPolicy.from_settings(self._settings), sleep=sleep,
            ),
            sleep=sleep,
        )
        self._scheduler = BatchScheduler(
            batch_size=self._settings.batch_size,
            inter_batch_delay_s=self._settings.inter_batch_delay_s,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def stats(self) -> IngestionStats:
        return self._tracker.snapshot()

    @property
    def scan_report(self) -> ScanReport | None:
        return self._scan_report

    @property
    def options(self) -> FilterOptions:
        return self._options

    @property
    def candidates(self) -> list[Candidate]:
        return list(self._candidates)

    @property
    def remaining(self) -> list[Candidate]:
        """Committed candidates with no terminal outcome yet."""
        return [c for c in self._candidates if c.candidate_id not in self._outcomes]

    @property
    def is_minimized(self) -> bool:
        return self._minimized

    # ------------------------------------------------------------------
    # Selection and scan
    # ------------------------------------------------------------------

    def select(
        self,
        candidates: Sequence[Candidate],
        options: FilterOptions | None = None,
    ) -> None:
        """Replace the selection. Any previous scan report is discarded."""
        self._require({SessionStatus.IDLE, SessionStatus.SCANNED}, "select candidates")
        self._candidates = list(candidates)
        if options is not None:
            self._options = options
        self._scan_report = None
        self._status = SessionStatus.IDLE

    async def scan(
        self,
        candidates: Sequence[Candidate] | None = None,
        options: FilterOptions | None = None,
    ) -> ScanReport:
        """Dry-run classification of the selection. Writes nothing."""
        self._require({SessionStatus.IDLE, SessionStatus.SCANNED}, "scan")
        if candidates is not None or options is not None:
            self.select(
                self._candidates if candidates is None else candidates, options,
            )

        previous = self._status
        self._status = SessionStatus.SCANNING
        set_session_context(self.session_id, self.scope)
        try:
            report = await scan_candidates(
                self._candidates,
                self._options,
                self._preflight,
                self.scope,
                cost_per_file_usd=self._settings.scan_cost_per_file_usd,
                seconds_per_file=self._settings.scan_seconds_per_file,
            )
        except BaseException:
            self._status = previous
            raise

        self._scan_report = report
        self._status = SessionStatus.SCANNED
        return report

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        candidates: Sequence[Candidate] | None = None,
        options: FilterOptions | None = None,
    ) -> asyncio.Task[SessionResult]:
        """Commit the selection and begin processing.

        Must be called from a running event loop.
        """
        self._require({SessionStatus.IDLE, SessionStatus.SCANNED}, "start")
        if candidates is not None or options is not None:
            self.select(
                self._candidates if candidates is None else candidates, options,
            )

        self._outcomes.clear()
        self._batches_run = 0
        self._control.reset()
        self._status = SessionStatus.RUNNING
        logger.info(
            "Session %s starting: %d candidates, batch size %d",
            self.session_id[:8], len(self._candidates), self._scheduler.batch_size,
        )
        self._task = asyncio.create_task(self._run(fresh=True))
        return self._task

    def pause(self) -> None:
        """Stop pulling batches once the in-flight batch completes."""
        if self._status is SessionStatus.PAUSED:
            return
        self._require({SessionStatus.RUNNING}, "pause")
        self._control.pause_requested = True
        logger.info("Session %s pause requested", self.session_id[:8])

    def resume(self) -> asyncio.Task[SessionResult]:
        """Continue with the candidates that have no outcome yet.

        While still running with a pause pending, withdraws the pause and
        returns the current run.
        """
        if (
            self._status is SessionStatus.RUNNING
            and self._control.pause_requested
            and not self._control.cancel_requested
        ):
            self._control.pause_requested = False
            logger.info("Session %s pause withdrawn", self.session_id[:8])
            return self._task  # type: ignore[return-value]
        self._require({SessionStatus.PAUSED}, "resume")
        self._control.reset()
        self._status = SessionStatus.RUNNING
        logger.info(
            "Session %s resuming: %d remaining",
            self.session_id[:8], len(self.remaining),
        )
        self._task = asyncio.create_task(self._run(fresh=False))
        return self._task

    def cancel(self) -> None:
        """Stop at the next batch boundary, or immediately when not running."""
        if self._status.is_terminal:
            return
        if self._status is SessionStatus.SCANNING:
            raise InvalidSessionStateError("cancel", self._status.value)
        if self._status is SessionStatus.RUNNING:
            self._control.cancel_requested = True
            logger.info("Session %s cancel requested", self.session_id[:8])
            return
        self._status = SessionStatus.CANCELLED
        self._tracker.broadcaster.finish()
        logger.info("Session %s cancelled", self.session_id[:8])

    async def wait(self) -> SessionResult:
        """Wait for the current run to stop and return the session result.

        The result reflects the session after the run, so a cancel issued
        while paused reports cancelled.
        """
        if self._task is not None:
            await self._task
        return self._result()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def observe_stats(self) -> StatsSubscription:
        """Independent subscription to stats snapshots."""
        return self._tracker.broadcaster.subscribe()

    def minimize(self) -> None:
        """Detach the progress view. Processing is unaffected."""
        self._minimized = True
        if self._view is not None:
            self._view.close()
            self._view = None

    def restore(self) -> StatsSubscription:
        """Reattach the progress view, starting from the current snapshot."""
        self._minimized = False
        if self._view is not None:
            self._view.close()
        self._view = self._tracker.broadcaster.subscribe()
        return self._view

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, fresh: bool) -> SessionResult:
        set_session_context(self.session_id, self.scope)
        if fresh:
            await self._tracker.start(total=len(self._candidates))
        else:
            await self._tracker.clear_quota_flag()

        try:
            outcome = await self._scheduler.run(
                self.remaining, self._handle, self._control,
            )
        except Exception:
            logger.exception("Session %s aborted", self.session_id[:8])
            self._status = SessionStatus.CANCELLED
            self._tracker.broadcaster.finish()
            raise

        self._batches_run += outcome.batches_run
        self._last_stop = outcome.stop_reason
        self._status = _STOP_STATUS[outcome.stop_reason]
        await self._tracker.clear_current_file()

        stats = self._tracker.snapshot()
        logger.info(
            "Session %s %s: %d/%d processed (%d ok, %d skipped, %d failed)",
            self.session_id[:8], self._status.value, stats.processed, stats.total,
            stats.successful, stats.skipped, stats.failed,
        )
        if self._status.is_terminal:
            self._tracker.broadcaster.finish()
        return self._result()

    async def _handle(self, candidate: Candidate) -> FileResult:
        set_file_context(candidate.filename)
        await self._tracker.set_current_file(candidate.filename)
        result = await self._processor.process(candidate, self._options, self.scope)
        self._outcomes[candidate.candidate_id] = result.outcome
        await self._tracker.record(result)
        return result

    def _result(self) -> SessionResult:
        return SessionResult(
            status=self._status,
            stats=self._tracker.snapshot(),
            quota_exceeded=self._last_stop is StopReason.QUOTA_EXCEEDED,
            batches_run=self._batches_run,
        )

    def _require(self, allowed: set[SessionStatus], operation: str) -> None:
        if self._status not in allowed:
            raise InvalidSessionStateError(operation, self._status.value)
