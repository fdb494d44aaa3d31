# tests/integration/storage/test_int_storage_lifecycle.py — v1
"""Integration tests for storage/local_store.py across store instances.

A new LocalRecordStore over the same root stands in for a process restart.
"""

from __future__ import annotations

import pytest

from factories import FakeAnalyzer, SleepRecorder, make_candidates
from photoingest.core.models import FilterOptions, SessionStatus
from photoingest.session.session import IngestionSession
from photoingest.storage.local_store import LocalRecordStore

SCOPE = "user-1"
OPEN = FilterOptions(skip_small_files=False)


@pytest.mark.asyncio
async def test_duplicates_survive_restart(tmp_path, settings):
    candidates = make_candidates(6)
    first = IngestionSession(
        SCOPE, LocalRecordStore(tmp_path), FakeAnalyzer(), settings=settings, sleep=SleepRecorder(),
    )
    first.start(candidates[:4], OPEN)
    assert (await first.wait()).stats.successful == 4

    analyzer = FakeAnalyzer()
    second = IngestionSession(
        SCOPE, LocalRecordStore(tmp_path), analyzer, settings=settings, sleep=SleepRecorder(),
    )
    report = await second.scan(candidates, OPEN)
    assert report.duplicates == 4
    assert report.valid_files == 2

    second.start()
    result = await second.wait()
    assert result.status is SessionStatus.COMPLETE
    assert (result.stats.successful, result.stats.skipped) == (2, 4)
    assert sorted(analyzer.calls) == ["IMG_0004.jpg", "IMG_0005.jpg"]
    assert len(await LocalRecordStore(tmp_path).list_records(SCOPE)) == 6


@pytest.mark.asyncio
async def test_blobs_and_thumbnails_on_disk(tmp_path, settings, fake_analyzer):
    store = LocalRecordStore(tmp_path)
    session = IngestionSession(SCOPE, store, fake_analyzer, settings=settings, sleep=SleepRecorder())
    session.start(make_candidates(2), OPEN)
    await session.wait()

    records = await store.list_records(SCOPE)
    for rec in records:
        assert (tmp_path / rec.content_locator).is_file()
        assert rec.thumbnail_locator is not None
        assert (tmp_path / rec.thumbnail_locator).is_file()
    assert len(list((tmp_path / "blobs" / SCOPE).iterdir())) == 4


@pytest.mark.asyncio
async def test_corrupt_record_file_ignored(tmp_path, settings, fake_analyzer):
    store = LocalRecordStore(tmp_path)
    session = IngestionSession(SCOPE, store, fake_analyzer, settings=settings, sleep=SleepRecorder())
    session.start(make_candidates(2), OPEN)
    await session.wait()

    bad = tmp_path / "records" / SCOPE / ("f" * 64 + ".json")
    bad.write_text("{not json")
    assert len(await store.list_records(SCOPE)) == 2
