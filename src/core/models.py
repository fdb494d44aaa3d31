# src/core/models.py — v1
"""Core domain models: Candidate, Fingerprint, FilterOptions, ScanReport,
IngestionStats, AnalysisResult, ImageMetadata, PersistedRecord.

All models are pydantic v2. Value objects that must not change after
creation (Candidate, Fingerprint, FilterOptions, PersistedRecord) are frozen.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionStatus(str, Enum):
    """Lifecycle states of an ingestion session."""

    IDLE = "idle"
    SCANNING = "scanning"
    SCANNED = "scanned"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETE, SessionStatus.CANCELLED)


class Classification(str, Enum):
    """Pre-flight verdict for a single candidate."""

    ACCEPT = "accept"
    SKIP_SMALL = "skip_small"
    SKIP_SCREENSHOT = "skip_screenshot"
    SKIP_DUPLICATE = "skip_duplicate"

    @property
    def is_skip(self) -> bool:
        return self is not Classification.ACCEPT


class FileOutcome(str, Enum):
    """Terminal per-file outcome."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


Orientation = Literal["landscape", "portrait", "square"]
QualityTier = Literal["top", "high", "archive"]


class Candidate(BaseModel):
    """A selected file that has not been ingested yet.

    Content lives either inline (``data``) or on disk (``path``). The
    ``position`` is the index in the original selection and fixes batch order.
    """

    model_config = ConfigDict(frozen=True)

    candidate_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    filename: str
    size_bytes: int = Field(ge=0)
    media_type: str = ""
    path: Path | None = None
    data: bytes | None = None
    position: int = 0
    last_modified: datetime | None = None

    @classmethod
    def from_path(cls, path: Path, position: int = 0, media_type: str = "") -> Candidate:
        """Build a candidate referencing a file on disk."""
        stat = path.stat()
        return cls(
            filename=path.name,
            size_bytes=stat.st_size,
            media_type=media_type,
            path=path,
            position=position,
            last_modified=datetime.fromtimestamp(stat.st_mtime),
        )

    @classmethod
    def from_bytes(
        cls,
        filename: str,
        data: bytes,
        media_type: str = "",
        position: int = 0,
    ) -> Candidate:
        """Build a candidate from in-memory content."""
        return cls(
            filename=filename,
            size_bytes=len(data),
            media_type=media_type,
            data=data,
            position=position,
        )

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    def read_bytes(self) -> bytes:
        """Return the candidate's content.

        Raises:
            OSError: If the backing file cannot be read.
            ValueError: If the candidate carries neither data nor a path.
        """
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"Candidate {self.filename!r} has no content source")
        return Path(self.path).read_bytes()


class Fingerprint(BaseModel):
    """Cryptographic digest of a candidate's byte content."""

    model_config = ConfigDict(frozen=True)

    algorithm: Literal["sha256"] = "sha256"
    digest: str

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        v = v.lower()
        if len(v) != 64 or any(c not in "0123456789abcdef" for c in v):
            raise ValueError("digest must be a 64-character hex string")
        return v

    def __str__(self) -> str:
        return self.digest


class FilterOptions(BaseModel):
    """Pre-flight filter configuration, fixed for a session's lifetime."""

    model_config = ConfigDict(frozen=True)

    skip_small_files: bool = True
    min_file_size_kb: int = Field(default=100, ge=0)
    skip_screenshots: bool = True
    skip_existing: bool = True

    @property
    def min_file_size_bytes(self) -> int:
        return self.min_file_size_kb * 1024


class ScanReport(BaseModel):
    """Dry-run summary of a candidate set. Derived, never persisted."""

    total_files: int = 0
    total_size_bytes: int = 0
    duplicates: int = 0
    screenshots: int = 0
    small_files: int = 0
    valid_files: int = 0
    estimated_cost_usd: float = 0.0
    estimated_minutes: int = 0


class FileError(BaseModel):
    """One failed file and the human-readable cause."""

    filename: str
    error: str


class TierCounts(BaseModel):
    """Successful files bucketed by quality tier."""

    top: int = 0
    high: int = 0
    archive: int = 0


class IngestionStats(BaseModel):
    """Live progress counters owned by one ingestion session."""

    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    tiers: TierCounts = Field(default_factory=TierCounts)
    current_file: str = ""
    start_time: datetime | None = None
    errors: list[FileError] = Field(default_factory=list)
    quota_exceeded: bool = False

    @property
    def remaining(self) -> int:
        return self.total - self.processed

    @property
    def is_balanced(self) -> bool:
        """Every processed file has exactly one outcome."""
        return self.successful + self.failed + self.skipped == self.processed

    def estimate_seconds_remaining(self, now: datetime) -> float | None:
        """Extrapolate the remaining time from the observed throughput.

        Returns None until at least one file has been processed.
        """
        if self.processed == 0 or self.start_time is None:
            return None
        elapsed = (now - self.start_time).total_seconds()
        if elapsed <= 0:
            return None
        rate = self.processed / elapsed
        return self.remaining / rate


class AnalysisResult(BaseModel):
    """Structured output of the remote analyzer for one image."""

    technical_score: float = Field(ge=0.0, le=10.0)
    commercial_score: float = Field(ge=0.0, le=10.0)
    artistic_score: float = Field(ge=0.0, le=10.0)
    emotional_score: float = Field(ge=0.0, le=10.0)
    overall_score: float = Field(ge=0.0, le=10.0)
    description: str = ""


class ImageMetadata(BaseModel):
    """Dimensions and capture details read from the image itself."""

    width: int
    height: int
    orientation: Orientation
    captured_at: datetime | None = None
    camera_make: str | None = None
    camera_model: str | None = None


class PersistedRecord(BaseModel):
    """Durable result of ingesting one candidate."""

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    scope: str
    filename: str
    provider: str = "manual_upload"
    content_locator: str
    thumbnail_locator: str | None = None
    fingerprint: Fingerprint
    media_type: str
    size_bytes: int
    width: int | None = None
    height: int | None = None
    orientation: Orientation | None = None
    captured_at: datetime | None = None
    camera_make: str | None = None
    camera_model: str | None = None
    technical_score: float
    commercial_score: float
    artistic_score: float
    emotional_score: float
    overall_score: float
    tier: QualityTier
    description: str = ""
    status: str = "new"
    analyzed_at: datetime


class SessionResult(BaseModel):
    """Returned by a session's run task once it stops."""

    status: SessionStatus
    stats: IngestionStats
    quota_exceeded: bool = False
    batches_run: int = 0


class FileResult(BaseModel):
    """Terminal outcome of processing one candidate."""

    candidate_id: str
    filename: str
    outcome: FileOutcome
    classification: Classification | None = None
    tier: QualityTier | None = None
    record_id: str | None = None
    error: str | None = None
    quota_exceeded: bool = False
