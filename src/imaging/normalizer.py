# src/imaging/normalizer.py — v1
"""Format normalizer: convert camera-native encodings to JPEG.

HEIC/HEIF are detected by extension or media type, because the layer that
produced the candidate may report an empty or generic media type for them.
JPEG, PNG, WEBP and GIF pass through untouched. Anything else Pillow can
decode is re-encoded to JPEG; anything it cannot is rejected.
"""

from __future__ import annotations

import io
import logging
import re

import pillow_heif
from PIL import Image, UnidentifiedImageError

from photoingest.core.errors import UnsupportedFormatError
from photoingest.core.models import Candidate

pillow_heif.register_heif_opener()

logger = logging.getLogger(__name__)

HEIF_EXTENSIONS = frozenset({".heic", ".heif"})
HEIF_MEDIA_TYPES = frozenset({
    "image/heic", "image/heif", "image/heic-sequence", "image/heif-sequence",
})

ACCEPTED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif"})
ACCEPTED_MEDIA_TYPES = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif",
})

_SUFFIX_RE = re.compile(r"\.[^./\\]+$")


def is_heif(candidate: Candidate) -> bool:
    return (
        candidate.extension in HEIF_EXTENSIONS
        or candidate.media_type.lower() in HEIF_MEDIA_TYPES
    )


def is_accepted(candidate: Candidate) -> bool:
    """Already in an encoding the analyzer and storage accept."""
    if is_heif(candidate):
        return False
    return (
        candidate.media_type.lower() in ACCEPTED_MEDIA_TYPES
        or candidate.extension in ACCEPTED_EXTENSIONS
    )


def jpeg_filename(filename: str) -> str:
    """'IMG_0001.HEIC' → 'IMG_0001.jpg'."""
    if _SUFFIX_RE.search(filename):
        return _SUFFIX_RE.sub(".jpg", filename)
    return f"{filename}.jpg"


class FormatNormalizer:
    """Convert candidates into a universally accepted encoding."""

    def __init__(self, jpeg_quality: int = 90) -> None:
        self._quality = jpeg_quality

    def needs_conversion(self, candidate: Candidate) -> bool:
        return not is_accepted(candidate)

    def normalize(self, candidate: Candidate) -> Candidate:
        """Return the candidate itself or a converted JPEG copy.

        CPU-bound; callers on an event loop should run it in a worker thread.

        Raises:
            UnsupportedFormatError: If the content cannot be decoded.
            OSError: If the content cannot be read.
        """
        if not self.needs_conversion(candidate):
            return candidate

        raw = candidate.read_bytes()
        try:
            converted = self._to_jpeg(raw)
        except (UnidentifiedImageError, ValueError, OSError) as e:
            raise UnsupportedFormatError(candidate.filename, str(e) or type(e).__name__) from e

        new_name = jpeg_filename(candidate.filename)
        logger.info(
            "Converted %s -> %s (%.1fKB)",
            candidate.filename, new_name, len(converted) / 1024,
        )
        return Candidate(
            candidate_id=candidate.candidate_id,
            filename=new_name,
            size_bytes=len(converted),
            media_type="image/jpeg",
            data=converted,
            position=candidate.position,
            last_modified=candidate.last_modified,
        )

    def _to_jpeg(self, raw: bytes) -> bytes:
        with Image.open(io.BytesIO(raw)) as img:
            exif = img.info.get("exif")
            rgb = img.convert("RGB")
        out = io.BytesIO()
        save_kwargs: dict[str, object] = {"format": "JPEG", "quality": self._quality}
        if exif:
            save_kwargs["exif"] = exif
        rgb.save(out, **save_kwargs)
        return out.getvalue()

