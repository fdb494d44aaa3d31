# tests/integration/session/test_int_ingestion_session.py — v1
"""Integration tests for a full ingestion session.

Covers: session/*, ingest/*, imaging/*, analyzer/retry.py, storage/memory_store.py
Real Pillow images, in-memory store, scripted analyzer. No network.
"""

from __future__ import annotations

import random

import pytest

from factories import FakeAnalyzer, SleepRecorder, make_candidates, make_record
from photoingest.core.errors import (
    QuotaExceededError,
    RateLimitedError,
    TransientAnalyzerError,
)
from photoingest.core.models import FilterOptions, SessionStatus
from photoingest.ingest.hasher import fingerprint_candidate
from photoingest.session.session import IngestionSession

SCOPE = "user-1"
OPEN = FilterOptions(skip_small_files=False)


class CancellingAnalyzer(FakeAnalyzer):
    def __init__(self, trigger: str) -> None:
        super().__init__()
        self.trigger = trigger
        self.session: IngestionSession | None = None

    async def analyze(self, image_bytes, filename):
        if filename == self.trigger and self.session is not None:
            self.session.cancel()
        return await super().analyze(image_bytes, filename)


class TestCancelAtBatchBoundary:
    @pytest.mark.asyncio
    async def test_cancel_in_second_batch(self, settings, memory_store):
        analyzer = CancellingAnalyzer(trigger="IMG_0013.jpg")
        session = IngestionSession(
            SCOPE, memory_store, analyzer,
            settings=settings.model_copy(update={"batch_size": 10}),
            sleep=SleepRecorder(),
        )
        analyzer.session = session

        session.start(make_candidates(25), OPEN)
        result = await session.wait()

        assert result.status is SessionStatus.CANCELLED
        assert result.stats.total == 25
        assert result.stats.processed == 20
        assert result.stats.remaining == 5
        assert result.batches_run == 2
        assert len(session.remaining) == 5
        assert {c.position for c in session.remaining} == set(range(20, 25))
        assert len(await memory_store.list_records(SCOPE)) == 20


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_twelve_files_one_duplicate_one_flaky(self, memory_store):
        from photoingest.config.settings import Settings

        settings = Settings(_env_file=None, batch_size=10, inter_batch_delay_ms=500)
        candidates = make_candidates(12)
        await memory_store.insert_record(
            make_record(scope=SCOPE, digest=fingerprint_candidate(candidates[4]).digest)
        )
        analyzer = FakeAnalyzer(failures={
            "IMG_0007.jpg": [TransientAnalyzerError("503"), TransientAnalyzerError("502")],
        })
        sleep = SleepRecorder()
        session = IngestionSession(SCOPE, memory_store, analyzer, settings=settings, sleep=sleep)

        report = await session.scan(candidates, OPEN)
        assert report.valid_files == 11
        assert report.duplicates == 1

        session.start()
        result = await session.wait()
        stats = result.stats

        assert result.status is SessionStatus.COMPLETE
        assert (stats.total, stats.processed) == (12, 12)
        assert (stats.successful, stats.skipped, stats.failed) == (11, 1, 0)
        assert stats.tiers.high == 11
        assert result.batches_run == 2
        assert sorted(sleep.delays) == [0.5, 2.0, 4.0]
        assert analyzer.calls.count("IMG_0007.jpg") == 3
        assert "IMG_0004.jpg" not in analyzer.calls
        assert len(await memory_store.list_records(SCOPE)) == 12

    @pytest.mark.asyncio
    async def test_rate_limited_file_recovers(self, settings, memory_store):
        analyzer = FakeAnalyzer(failures={"IMG_0001.jpg": [RateLimitedError("429")]})
        sleep = SleepRecorder()
        session = IngestionSession(SCOPE, memory_store, analyzer, settings=settings, sleep=sleep)

        session.start(make_candidates(3), OPEN)
        result = await session.wait()

        assert result.stats.successful == 3
        assert sleep.delays == [60.0]
        assert analyzer.calls.count("IMG_0001.jpg") == 2

    @pytest.mark.asyncio
    async def test_identical_files_in_one_batch_ingested_once(self, settings, memory_store, fake_analyzer):
        candidates = make_candidates(3)
        twin = candidates[0].model_copy(update={"candidate_id": "twin", "filename": "copy.jpg", "position": 3})
        session = IngestionSession(SCOPE, memory_store, fake_analyzer, settings=settings, sleep=SleepRecorder())

        session.start([*candidates, twin], OPEN)
        result = await session.wait()

        assert result.stats.successful == 3
        assert result.stats.skipped == 1
        assert len(await memory_store.list_records(SCOPE)) == 3

    @pytest.mark.asyncio
    async def test_rerun_skips_everything(self, settings, memory_store, fake_analyzer):
        candidates = make_candidates(4)
        first = IngestionSession(SCOPE, memory_store, fake_analyzer, settings=settings, sleep=SleepRecorder())
        first.start(candidates, OPEN)
        await first.wait()

        second = IngestionSession(SCOPE, memory_store, fake_analyzer, settings=settings, sleep=SleepRecorder())
        report = await second.scan(candidates, OPEN)
        assert report.duplicates == 4
        second.start()
        result = await second.wait()
        assert result.stats.skipped == 4
        assert len(fake_analyzer.calls) == 4


class TestConservation:
    @pytest.mark.asyncio
    async def test_outcomes_always_balance(self, settings, memory_store):
        rng = random.Random(7)
        candidates = make_candidates(30)
        failures = {
            c.filename: [TransientAnalyzerError("x")] * rng.choice([0, 1, 3])
            for c in candidates
        }
        analyzer = FakeAnalyzer(failures=failures)
        session = IngestionSession(
            SCOPE, memory_store, analyzer,
            settings=settings.model_copy(update={"batch_size": 7}),
            sleep=SleepRecorder(),
        )
        observed = session.observe_stats()

        session.start(candidates, OPEN)
        snapshots = [s async for s in observed]
        result = await session.wait()

        assert result.stats.processed == 30
        assert result.stats.is_balanced
        assert all(s.is_balanced for s in snapshots)
        assert result.stats.failed == sum(1 for v in failures.values() if len(v) == 3)
        assert len(result.stats.errors) == result.stats.failed
        tiers = result.stats.tiers
        assert tiers.top + tiers.high + tiers.archive == result.stats.successful

    @pytest.mark.asyncio
    async def test_quota_stops_then_resume_finishes(self, settings, memory_store):
        analyzer = FakeAnalyzer(failures={"IMG_0012.jpg": [QuotaExceededError("quota")]})
        session = IngestionSession(
            SCOPE, memory_store, analyzer,
            settings=settings.model_copy(update={"batch_size": 10}),
            sleep=SleepRecorder(),
        )
        session.start(make_candidates(25), OPEN)
        halted = await session.wait()
        assert halted.status is SessionStatus.PAUSED
        assert halted.quota_exceeded
        assert halted.stats.processed == 20

        session.resume()
        done = await session.wait()
        assert done.status is SessionStatus.COMPLETE
        assert done.stats.processed == 25
        assert done.stats.failed == 1
