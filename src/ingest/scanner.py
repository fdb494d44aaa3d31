# src/ingest/scanner.py — v1
"""Folder intake and dry-run scanning.

discover_candidates() turns a directory into an ordered candidate list,
keeping only image files. scan_candidates() classifies every candidate
without touching persisted state and aggregates a ScanReport.
"""

from __future__ import annotations

import logging
import math
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING

from photoingest.core.models import Candidate, Classification, ScanReport

if TYPE_CHECKING:
    from photoingest.core.models import FilterOptions
    from photoingest.ingest.preflight import PreflightFilter

logger = logging.getLogger(__name__)

# Image extensions accepted at intake, mapped to media types. HEIC/HEIF are
# listed because some platforms report an empty media type for them.
IMAGE_EXTENSIONS: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".heic": "image/heic",
    ".heif": "image/heif",
}


def guess_media_type(path: Path) -> str:
    """Media type from the extension, falling back to mimetypes."""
    known = IMAGE_EXTENSIONS.get(path.suffix.lower())
    if known:
        return known
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or ""


def discover_candidates(scan_root: Path, recursive: bool = True) -> list[Candidate]:
    """List image files under a directory in a stable order.

    Args:
        scan_root: Root directory to scan.
        recursive: If True, descend into subdirectories.

    Returns:
        Candidates with ``position`` set to their index in the sorted listing.

    Raises:
        ValueError: If scan_root is not a directory.
    """
    if not scan_root.is_dir():
        msg = f"Scan root is not a directory: {scan_root}"
        raise ValueError(msg)

    pattern_fn = scan_root.rglob if recursive else scan_root.glob
    candidates: list[Candidate] = []
    for path in sorted(pattern_fn("*")):
        if not path.is_file() or path.name.startswith("."):
            continue
        media_type = guess_media_type(path)
        if not media_type.startswith("image/"):
            continue
        candidates.append(
            Candidate.from_path(path, position=len(candidates), media_type=media_type)
        )

    logger.info(
        "Scanned %s: found %d image files (recursive=%s)",
        scan_root, len(candidates), recursive,
    )
    return candidates


async def scan_candidates(
    candidates: list[Candidate],
    options: FilterOptions,
    preflight: PreflightFilter,
    scope: str,
    cost_per_file_usd: float = 0.002,
    seconds_per_file: float = 3.0,
) -> ScanReport:
    """Classify every candidate and aggregate the counts.

    Side-effect-free: running it twice on the same input with no ingestion
    in between yields the same report. A candidate whose content cannot be
    read for the duplicate check is counted as valid; the live pipeline
    will record the read failure.
    """
    total_size = 0
    counts = {
        Classification.SKIP_SMALL: 0,
        Classification.SKIP_SCREENSHOT: 0,
        Classification.SKIP_DUPLICATE: 0,
    }

    for candidate in candidates:
        total_size += candidate.size_bytes
        try:
            verdict = await preflight.classify(candidate, options, scope)
        except OSError:
            logger.warning(
                "Could not read %s during scan, counting as valid",
                candidate.filename, exc_info=True,
            )
            continue
        if verdict.is_skip:
            counts[verdict] += 1

    valid = len(candidates) - sum(counts.values())
    report = ScanReport(
        total_files=len(candidates),
        total_size_bytes=total_size,
        duplicates=counts[Classification.SKIP_DUPLICATE],
        screenshots=counts[Classification.SKIP_SCREENSHOT],
        small_files=counts[Classification.SKIP_SMALL],
        valid_files=valid,
        estimated_cost_usd=round(valid * cost_per_file_usd, 4),
        estimated_minutes=math.ceil(valid * seconds_per_file / 60),
    )
    logger.info(
        "Scan complete: %d/%d eligible (%d duplicates, %d screenshots, %d small)",
        report.valid_files, report.total_files, report.duplicates,
        report.screenshots, report.small_files,
    )
    return report
