# src/api/facade.py — v1
"""Public API facade: scan or ingest a folder of photos.

Usage:
    from photoingest.api.facade import ingest_folder
    result = await ingest_folder(Path("~/Pictures/trip"), scope="user-42")

Callers that need pause/resume/cancel or live progress should use
build_session() and drive the IngestionSession directly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from photoingest.config.settings import load_settings
from photoingest.ingest.scanner import discover_candidates
from photoingest.session.session import IngestionSession

if TYPE_CHECKING:
    from photoingest.analyzer.base_client import BaseAnalyzerClient
    from photoingest.config.settings import Settings
    from photoingest.core.models import FilterOptions, ScanReport, SessionResult
    from photoingest.storage.base_store import BaseRecordStore

logger = logging.getLogger(__name__)


def build_session(
    scope: str,
    settings: Settings | None = None,
    store: BaseRecordStore | None = None,
    analyzer: BaseAnalyzerClient | None = None,
) -> IngestionSession:
    """Wire a session from settings, creating backends that were not given.

    Args:
        scope: User scope for every record written.
        settings: Global settings. Loaded from .env if None.
        store: Record store. Built from STORAGE_BACKEND if None.
        analyzer: Analyzer client. Built from ANALYZER_PROVIDER if None.
    """
    settings = settings or load_settings()
    if store is None:
        from photoingest.storage.store_factory import create_store
        store = create_store(settings)
    if analyzer is None:
        from photoingest.analyzer.client_factory import create_analyzer
        analyzer = create_analyzer(settings)
    return IngestionSession(scope=scope, store=store, analyzer=analyzer, settings=settings)


async def scan_folder(
    folder: Path,
    scope: str,
    options: FilterOptions | None = None,
    settings: Settings | None = None,
    store: BaseRecordStore | None = None,
    analyzer: BaseAnalyzerClient | None = None,
    recursive: bool = True,
) -> ScanReport:
    """Dry-run a folder: counts, estimated cost and time. Writes nothing.

    Raises:
        ValueError: If ``folder`` is not a directory.
    """
    candidates = discover_candidates(Path(folder).expanduser(), recursive=recursive)
    session = build_session(scope, settings=settings, store=store, analyzer=analyzer)
    return await session.scan(candidates, options)


async def ingest_folder(
    folder: Path,
    scope: str,
    options: FilterOptions | None = None,
    settings: Settings | None = None,
    store: BaseRecordStore | None = None,
    analyzer: BaseAnalyzerClient | None = None,
    recursive: bool = True,
) -> SessionResult:
    """Ingest every image under ``folder`` and wait for the session to stop.

    Raises:
        ValueError: If ``folder`` is not a directory.
    """
    candidates = discover_candidates(Path(folder).expanduser(), recursive=recursive)
    session = build_session(scope, settings=settings, store=store, analyzer=analyzer)
    logger.info("Ingesting %d candidates from %s", len(candidates), folder)
    session.start(candidates, options)
    return await session.wait()
