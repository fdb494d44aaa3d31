# src/imaging/compression.py — v1
"""Image compression before analysis and thumbnail generation.

Both outputs are JPEG with EXIF orientation applied to the pixels.
"""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

_MIN_QUALITY = 40
_QUALITY_STEP = 10


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue()


def _load_upright(data: bytes, max_dimension: int) -> Image.Image:
    with Image.open(io.BytesIO(data)) as img:
        upright = ImageOps.exif_transpose(img)
        upright = upright.convert("RGB")
    upright.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return upright


def compress_image(
    data: bytes,
    max_dimension: int = 1920,
    quality: int = 85,
    max_size_mb: float = 1.0,
) -> bytes:
    """Downscale to fit max_dimension and re-encode under a size budget.

    Quality is stepped down until the output fits max_size_mb or the floor
    quality is reached.

    Raises:
        OSError: If the image cannot be decoded (PIL.UnidentifiedImageError).
    """
    img = _load_upright(data, max_dimension)
    budget = int(max_size_mb * 1024 * 1024)

    encoded = _encode_jpeg(img, quality)
    while len(encoded) > budget and quality > _MIN_QUALITY:
        quality = max(_MIN_QUALITY, quality - _QUALITY_STEP)
        encoded = _encode_jpeg(img, quality)

    logger.debug(
        "Compressed %.1fKB -> %.1fKB (%dx%d, q=%d)",
        len(data) / 1024, len(encoded) / 1024, img.width, img.height, quality,
    )
    return encoded


def make_thumbnail(data: bytes, max_dimension: int = 400, quality: int = 80) -> bytes:
    """Small preview image for grids."""
    return _encode_jpeg(_load_upright(data, max_dimension), quality)
