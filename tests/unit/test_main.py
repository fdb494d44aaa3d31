# tests/unit/test_main.py — v1
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from photoingest.core.models import IngestionStats, SessionResult, SessionStatus
from photoingest.main import _build_parser, main


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    yield
    root = logging.getLogger("photoingest")
    for h in root.handlers:
        h.close()
    root.handlers.clear()


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_scan_subcommand(self):
        args = _build_parser().parse_args(["scan", "/photos", "--no-recursive"])
        assert args.command == "scan"
        assert args.directory == Path("/photos")
        assert args.no_recursive is True
        assert args.scope == "default"

    def test_ingest_subcommand(self):
        args = _build_parser().parse_args([
            "ingest", "/photos", "--scope", "alice", "--batch-size", "4",
            "--keep-small", "--include-existing",
        ])
        assert args.command == "ingest"
        assert args.scope == "alice"
        assert args.batch_size == 4
        assert args.keep_small is True
        assert args.include_existing is True


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command(self):
        assert main([]) == 1

    def test_scan(self, photo_dir, capsys):
        assert main(["scan", str(photo_dir), "--keep-small"]) == 0
        out = capsys.readouterr().out
        assert "Files found:    5" in out
        assert "Screenshots:    1" in out
        assert "To process:     4" in out

    def test_scan_missing_directory(self, tmp_path):
        assert main(["scan", str(tmp_path / "missing")]) == 1

    def test_ingest_uses_facade(self, photo_dir, capsys):
        result = SessionResult(
            status=SessionStatus.COMPLETE,
            stats=IngestionStats(total=5, processed=5, successful=4, skipped=1),
        )
        with patch("photoingest.api.facade.ingest_folder", new=AsyncMock(return_value=result)) as mock:
            code = main(["ingest", str(photo_dir), "-s", "alice", "--batch-size", "3"])
        assert code == 0
        kwargs = mock.await_args.kwargs
        assert kwargs["scope"] == "alice"
        assert kwargs["settings"].batch_size == 3
        assert "Successful:   4" in capsys.readouterr().out

    def test_ingest_quota_exit_code(self, photo_dir):
        result = SessionResult(
            status=SessionStatus.PAUSED,
            stats=IngestionStats(total=5, processed=2, failed=1, successful=1, quota_exceeded=True),
            quota_exceeded=True,
        )
        with patch("photoingest.api.facade.ingest_folder", new=AsyncMock(return_value=result)):
            assert main(["ingest", str(photo_dir)]) == 3

    def test_configuration_error(self, photo_dir, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "local")
        assert main(["scan", str(photo_dir)]) == 2
