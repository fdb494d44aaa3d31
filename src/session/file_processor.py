# src/session/file_processor.py — v1
"""Per-file pipeline: preflight, normalize, fingerprint, analyze, persist.

Stage order for one candidate:
  1. Local filter (size, screenshot name)
  2. Format normalization (HEIC/HEIF to JPEG)
  3. Fingerprint of the original bytes
  4. Duplicate check against the record store
  5. Metadata, compression, thumbnail (worker thread)
  6. Remote analysis with retry and rate-limit cooldown
  7. Blob uploads and record insert

process() never raises for a per-file problem. Every failure becomes a
FileResult; quota exhaustion is flagged so the scheduler can halt.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from photoingest.analyzer.retry import RetryPolicy, SleepFn, with_retry
from photoingest.analyzer.scoring import assign_tier
from photoingest.core.errors import DuplicateRecordError, QuotaExceededError
from photoingest.core.models import (
    Candidate,
    Classification,
    FileOutcome,
    FileResult,
    FilterOptions,
    PersistedRecord,
)
from photoingest.imaging.compression import compress_image, make_thumbnail
from photoingest.imaging.metadata import extract_metadata
from photoingest.imaging.normalizer import jpeg_filename
from photoingest.ingest.hasher import fingerprint_candidate
from photoingest.logging.context import set_stage

if TYPE_CHECKING:
    from photoingest.analyzer.retry import RetryingAnalyzer
    from photoingest.config.settings import Settings
    from photoingest.imaging.normalizer import FormatNormalizer
    from photoingest.ingest.preflight import PreflightFilter
    from photoingest.storage.base_store import BaseRecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FileProcessor:
    """Runs one candidate through the full pipeline.

    Args:
        settings: Thresholds and imaging parameters.
        store: Blob and record persistence.
        preflight: Shared classification logic (same as scan).
        normalizer: HEIC/HEIF to JPEG converter.
        analyzer: Retrying analyzer wrapper.
        sleep: Injected for the storage retry backoff.
    """

    def __init__(
        self,
        settings: Settings,
        store: BaseRecordStore,
        preflight: PreflightFilter,
        normalizer: FormatNormalizer,
        analyzer: RetryingAnalyzer,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._store = store
        self._preflight = preflight
        self._normalizer = normalizer
        self._analyzer = analyzer
        self._sleep = sleep
        self._retry_policy = RetryPolicy.from_settings(settings)

    async def process(
        self, candidate: Candidate, options: FilterOptions, scope: str,
    ) -> FileResult:
        """Process one candidate to a terminal outcome."""
        try:
            return await self._process(candidate, options, scope)
        except QuotaExceededError as e:
            logger.error("Quota exceeded while processing %s: %s", candidate.filename, e)
            return self._failed(candidate, "Analyzer quota exceeded", quota_exceeded=True)
        except DuplicateRecordError:
            # A concurrent file with the same content won the insert.
            logger.info("Duplicate detected at insert for %s", candidate.filename)
            return self._skipped(candidate, Classification.SKIP_DUPLICATE)
        except Exception as e:
            logger.warning("Failed to process %s: %s", candidate.filename, e, exc_info=True)
            return self._failed(candidate, str(e) or type(e).__name__)

    async def _process(
        self, candidate: Candidate, options: FilterOptions, scope: str,
    ) -> FileResult:
        set_stage("preflight")
        verdict = self._preflight.classify_local(candidate, options)
        if verdict.is_skip:
            logger.debug("Skipping %s: %s", candidate.filename, verdict.value)
            return self._skipped(candidate, verdict)

        set_stage("normalize")
        normalized = await asyncio.to_thread(self._normalizer.normalize, candidate)

        set_stage("fingerprint")
        fingerprint = await asyncio.to_thread(fingerprint_candidate, candidate)

        set_stage("dedup")
        verdict = await self._preflight.check_duplicate(fingerprint, options, scope)
        if verdict.is_skip:
            logger.debug("Skipping %s: already ingested", candidate.filename)
            return self._skipped(candidate, verdict)

        set_stage("prepare")
        content = await asyncio.to_thread(normalized.read_bytes)
        metadata = await asyncio.to_thread(extract_metadata, content, normalized.filename)
        compressed = await asyncio.to_thread(self._compress, content, normalized.filename)
        if compressed is None:
            blob, blob_name = content, normalized.filename
            media_type = normalized.media_type or "image/jpeg"
        else:
            blob, blob_name = compressed, jpeg_filename(normalized.filename)
            media_type = "image/jpeg"
        thumbnail = await asyncio.to_thread(self._thumbnail, content, normalized.filename)

        set_stage("analyze")
        analysis = await self._analyzer.analyze(blob, normalized.filename)
        tier = assign_tier(
            analysis.overall_score,
            self._settings.tier_top_threshold,
            self._settings.tier_high_threshold,
        )

        set_stage("persist")
        content_locator = await self._with_storage_retry(
            lambda: self._store.put(blob, scope, blob_name),
            f"upload {normalized.filename}",
        )
        thumbnail_locator = None
        if thumbnail is not None:
            thumb_name = f"thumb_{jpeg_filename(normalized.filename)}"
            thumbnail_locator = await self._with_storage_retry(
                lambda: self._store.put(thumbnail, scope, thumb_name),
                f"upload thumbnail {normalized.filename}",
            )

        record = PersistedRecord(
            scope=scope,
            filename=Path(candidate.filename).stem,
            content_locator=content_locator,
            thumbnail_locator=thumbnail_locator,
            fingerprint=fingerprint,
            media_type=media_type,
            size_bytes=len(blob),
            width=metadata.width,
            height=metadata.height,
            orientation=metadata.orientation,
            captured_at=metadata.captured_at,
            camera_make=metadata.camera_make,
            camera_model=metadata.camera_model,
            technical_score=analysis.technical_score,
            commercial_score=analysis.commercial_score,
            artistic_score=analysis.artistic_score,
            emotional_score=analysis.emotional_score,
            overall_score=analysis.overall_score,
            tier=tier,
            description=analysis.description,
            analyzed_at=datetime.now(timezone.utc),
        )
        await self._with_storage_retry(
            lambda: self._store.insert_record(record),
            f"insert record {normalized.filename}",
        )

        logger.info(
            "Ingested %s (overall %.1f, tier %s)",
            candidate.filename, analysis.overall_score, tier,
        )
        return FileResult(
            candidate_id=candidate.candidate_id,
            filename=candidate.filename,
            outcome=FileOutcome.SUCCESS,
            tier=tier,
            record_id=record.record_id,
        )

    def _compress(self, content: bytes, filename: str) -> bytes | None:
        s = self._settings
        try:
            return compress_image(
                content,
                max_dimension=s.compress_max_dimension,
                quality=s.compress_quality,
                max_size_mb=s.compress_max_size_mb,
            )
        except OSError as e:
            logger.warning("Compression failed for %s, using original bytes: %s", filename, e)
            return None

    def _thumbnail(self, content: bytes, filename: str) -> bytes | None:
        s = self._settings
        try:
            return make_thumbnail(
                content,
                max_dimension=s.thumbnail_max_dimension,
                quality=s.thumbnail_quality,
            )
        except OSError as e:
            logger.warning("Thumbnail failed for %s: %s", filename, e)
            return None

    async def _with_storage_retry(
        self, operation: Callable[[], Awaitable[T]], label: str,
    ) -> T:
        return await with_retry(
            operation,
            self._retry_policy.max_attempts,
            base_delay_ms=self._retry_policy.base_delay_ms,
            sleep=self._sleep,
            label=label,
        )

    @staticmethod
    def _skipped(candidate: Candidate, classification: Classification) -> FileResult:
        return FileResult(
            candidate_id=candidate.candidate_id,
            filename=candidate.filename,
            outcome=FileOutcome.SKIPPED,
            classification=classification,
        )

    @staticmethod
    def _failed(
        candidate: Candidate, error: str, quota_exceeded: bool = False,
    ) -> FileResult:
        return FileResult(
            candidate_id=candidate.candidate_id,
            filename=candidate.filename,
            outcome=FileOutcome.FAILED,
            error=error,
            quota_exceeded=quota_exceeded,
        )
