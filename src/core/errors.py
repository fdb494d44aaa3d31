# src/core/errors.py — v1
"""Exception hierarchy for the ingestion pipeline.

Per-file errors are caught at the file boundary and turned into stats
entries. QuotaExceededError is the one failure that also stops the session.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for all ingestion errors."""


class UnsupportedFormatError(IngestionError):
    """The file cannot be converted into an accepted image encoding."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"Unsupported format for {filename}: {reason}")


class StorageError(IngestionError):
    """A blob upload or record insert failed."""


class InvalidSessionStateError(IngestionError):
    """A lifecycle operation was called in a state that does not allow it."""

    def __init__(self, operation: str, status: str) -> None:
        self.operation = operation
        self.status = status
        super().__init__(f"Cannot {operation} while session is {status}")


class AnalyzerError(IngestionError):
    """Base class for remote analyzer failures."""


class RateLimitedError(AnalyzerError):
    """The analyzer asked us to slow down. Recovers with time, not load."""


class QuotaExceededError(AnalyzerError):
    """The account quota is exhausted. Retrying cannot succeed."""


class TransientAnalyzerError(AnalyzerError):
    """Network hiccup or generic server-side error. Safe to retry."""


class InvalidAnalysisError(AnalyzerError):
    """The analyzer replied but the reply carries no usable scores."""


class RetryExhaustedError(IngestionError):
    """All attempts of a retried operation failed."""

    def __init__(self, operation: str, attempts: int, last_error: Exception) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}"
        )


class DuplicateRecordError(StorageError):
    """A record with the same fingerprint already exists in the scope."""

    def __init__(self, scope: str, fingerprint_digest: str) -> None:
        self.scope = scope
        self.fingerprint_digest = fingerprint_digest
        super().__init__(
            f"Record with fingerprint {fingerprint_digest[:12]} already exists in {scope}"
        )
