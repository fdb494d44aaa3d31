# src/ingest/hasher.py — v1
"""Content fingerprinting for duplicate detection.

SHA-256 over the raw bytes. Filename, size and media type are never part
of the identity.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from photoingest.core.models import Candidate, Fingerprint

_CHUNK_SIZE = 1024 * 1024


def compute_fingerprint(data: bytes) -> Fingerprint:
    """Fingerprint an in-memory byte string."""
    return Fingerprint(digest=hashlib.sha256(data).hexdigest())


def fingerprint_file(path: Path) -> Fingerprint:
    """Fingerprint a file on disk without loading it whole.

    Raises:
        OSError: If the file cannot be read.
    """
    h = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return Fingerprint(digest=h.hexdigest())


def fingerprint_candidate(candidate: Candidate) -> Fingerprint:
    """Fingerprint a candidate from its inline data or backing file."""
    if candidate.data is not None:
        return compute_fingerprint(candidate.data)
    if candidate.path is None:
        raise ValueError(f"Candidate {candidate.filename!r} has no content source")
    return fingerprint_file(candidate.path)
