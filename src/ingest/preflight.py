# src/ingest/preflight.py — v1
"""Pre-flight filter: classify a candidate before any upload work.

Checks run cheapest first, first match wins:
  1. declared size below threshold → SKIP_SMALL
  2. filename looks like a screenshot → SKIP_SCREENSHOT
  3. fingerprint already in the duplicate index → SKIP_DUPLICATE

The scan and the live pipeline both go through classify_local() and
check_duplicate(), in that order, so the two can only disagree when the
index itself changed in between.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from photoingest.core.models import Classification
from photoingest.ingest.hasher import fingerprint_candidate

if TYPE_CHECKING:
    from photoingest.core.models import Candidate, FilterOptions, Fingerprint
    from photoingest.ingest.dedup import DuplicateIndex

logger = logging.getLogger(__name__)

SCREENSHOT_MARKERS: tuple[str, ...] = ("screenshot", "screen shot", "screen_shot")


def is_screenshot_name(filename: str) -> bool:
    """Case-insensitive substring match against the screenshot markers."""
    lowered = filename.lower()
    return any(marker in lowered for marker in SCREENSHOT_MARKERS)


class PreflightFilter:
    """Classify candidates as accepted or skipped."""

    def __init__(self, index: DuplicateIndex) -> None:
        self._index = index

    @staticmethod
    def classify_local(
        candidate: Candidate, options: FilterOptions,
    ) -> Classification:
        """Checks that need only the declared name and size."""
        if options.skip_small_files and candidate.size_bytes < options.min_file_size_bytes:
            return Classification.SKIP_SMALL
        if options.skip_screenshots and is_screenshot_name(candidate.filename):
            return Classification.SKIP_SCREENSHOT
        return Classification.ACCEPT

    async def check_duplicate(
        self,
        fingerprint: Fingerprint,
        options: FilterOptions,
        scope: str,
    ) -> Classification:
        """Duplicate check against the index, honoring skip_existing."""
        if not options.skip_existing:
            return Classification.ACCEPT
        if await self._index.contains(scope, fingerprint):
            return Classification.SKIP_DUPLICATE
        return Classification.ACCEPT

    async def classify(
        self,
        candidate: Candidate,
        options: FilterOptions,
        scope: str,
    ) -> Classification:
        """Full classification of one candidate.

        Raises:
            OSError: If the duplicate check needs the content and it
                cannot be read.
        """
        verdict = self.classify_local(candidate, options)
        if verdict.is_skip:
            return verdict
        if not options.skip_existing:
            return Classification.ACCEPT
        fingerprint = await asyncio.to_thread(fingerprint_candidate, candidate)
        return await self.check_duplicate(fingerprint, options, scope)
