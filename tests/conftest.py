# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides Pillow-generated images, a scripted fake analyzer, an in-memory
record store and a sleep recorder. No network access: the remote analyzer
is always faked.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from factories import FakeAnalyzer, SleepRecorder, color_for, make_jpeg, make_png
from photoingest.config.settings import Settings
from photoingest.core.models import FilterOptions
from photoingest.storage.memory_store import MemoryRecordStore


# === Fixtures ===


@pytest.fixture
def settings() -> Settings:
    """Defaults with no .env and no inter-batch delay."""
    return Settings(_env_file=None, inter_batch_delay_ms=0)


@pytest.fixture
def open_options() -> FilterOptions:
    """Filters that accept small test images but still skip duplicates."""
    return FilterOptions(skip_small_files=False, skip_screenshots=True, skip_existing=True)


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def photo_dir(tmp_path: Path) -> Path:
    """Folder with three JPEGs, a PNG, a screenshot, a text file and a hidden file."""
    root = tmp_path / "photos"
    (root / "sub").mkdir(parents=True)
    (root / "a.jpg").write_bytes(make_jpeg(width=65, color=color_for(1)))
    (root / "b.JPG").write_bytes(make_jpeg(width=66, color=color_for(2)))
    (root / "sub" / "c.jpeg").write_bytes(make_jpeg(width=67, color=color_for(3)))
    (root / "d.png").write_bytes(make_png())
    (root / "Screenshot 2024-01-01.png").write_bytes(make_png(40, 40))
    (root / "notes.txt").write_text("not an image")
    (root / ".hidden.jpg").write_bytes(make_jpeg(width=68, color=color_for(4)))
    return root
