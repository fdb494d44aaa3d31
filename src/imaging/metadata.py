# src/imaging/metadata.py — v1
"""Read dimensions, orientation and EXIF capture details from an image."""

from __future__ import annotations

import io
from datetime import datetime

from PIL import Image, UnidentifiedImageError

from photoingest.core.errors import UnsupportedFormatError
from photoingest.core.models import ImageMetadata, Orientation

_EXIF_IFD = 0x8769
_TAG_MAKE = 271
_TAG_MODEL = 272
_TAG_DATETIME = 306
_TAG_ORIENTATION = 274
_TAG_DATETIME_ORIGINAL = 36867

# EXIF orientations 5-8 rotate by 90 degrees, so displayed width/height swap.
_SWAPPED_ORIENTATIONS = frozenset({5, 6, 7, 8})


def calculate_orientation(width: int, height: int) -> Orientation:
    """Landscape/portrait with a 5% tolerance band for square."""
    if height <= 0:
        return "landscape"
    ratio = width / height
    if ratio > 1.05:
        return "landscape"
    if ratio < 0.95:
        return "portrait"
    return "square"


def _parse_exif_datetime(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip("\x00 "), "%Y:%m:%d %H:%M:%S")
    except ValueError:
        return None


def _clean_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip("\x00 ")
    return cleaned or None


def extract_metadata(data: bytes, filename: str = "") -> ImageMetadata:
    """Displayed dimensions, orientation, capture time and camera.

    Raises:
        UnsupportedFormatError: If the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            exif = img.getexif()
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedFormatError(filename or "<bytes>", f"cannot read image: {e}") from e

    if exif.get(_TAG_ORIENTATION) in _SWAPPED_ORIENTATIONS:
        width, height = height, width

    sub_ifd = exif.get_ifd(_EXIF_IFD)
    captured_at = (
        _parse_exif_datetime(sub_ifd.get(_TAG_DATETIME_ORIGINAL))
        or _parse_exif_datetime(exif.get(_TAG_DATETIME))
    )

    return ImageMetadata(
        width=width,
        height=height,
        orientation=calculate_orientation(width, height),
        captured_at=captured_at,
        camera_make=_clean_str(exif.get(_TAG_MAKE)),
        camera_model=_clean_str(exif.get(_TAG_MODEL)),
    )
