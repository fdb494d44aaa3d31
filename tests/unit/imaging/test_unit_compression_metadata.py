# tests/unit/imaging/test_unit_compression_metadata.py — v1
"""Tests for imaging/compression.py and imaging/metadata.py."""

from __future__ import annotations

import io
import os
from datetime import datetime

import pytest
from PIL import Image

from factories import make_jpeg
from photoingest.core.errors import UnsupportedFormatError
from photoingest.imaging.compression import compress_image, make_thumbnail
from photoingest.imaging.metadata import calculate_orientation, extract_metadata


def _size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def _noisy_jpeg(width: int, height: int) -> bytes:
    img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=95)
    return buf.getvalue()


class TestCompressImage:
    def test_downscales_to_max_dimension(self):
        out = compress_image(make_jpeg(3000, 1500), max_dimension=1920)
        assert _size(out) == (1920, 960)

    def test_small_image_not_upscaled(self):
        out = compress_image(make_jpeg(200, 100))
        assert _size(out) == (200, 100)

    def test_steps_quality_down_for_budget(self):
        data = _noisy_jpeg(800, 800)
        loose = compress_image(data, max_dimension=800, quality=95, max_size_mb=10)
        tight = compress_image(data, max_dimension=800, quality=95, max_size_mb=0.1)
        assert len(tight) < len(loose)

    def test_png_becomes_jpeg(self):
        buf = io.BytesIO()
        Image.new("RGBA", (50, 50), (0, 0, 0, 0)).save(buf, format="PNG")
        out = compress_image(buf.getvalue())
        with Image.open(io.BytesIO(out)) as img:
            assert img.format == "JPEG"

    def test_garbage_raises_oserror(self):
        with pytest.raises(OSError):
            compress_image(b"not an image")


class TestMakeThumbnail:
    def test_fits_thumbnail_box(self):
        out = make_thumbnail(make_jpeg(1200, 800), max_dimension=400)
        assert _size(out) == (400, 266) or _size(out) == (400, 267)


class TestCalculateOrientation:
    @pytest.mark.parametrize("w,h,expected", [
        (1920, 1080, "landscape"),
        (1080, 1920, "portrait"),
        (1000, 1000, "square"),
        (1040, 1000, "square"),
        (960, 1000, "square"),
        (1060, 1000, "landscape"),
        (940, 1000, "portrait"),
    ])
    def test_tolerance_band(self, w, h, expected):
        assert calculate_orientation(w, h) == expected


class TestExtractMetadata:
    def test_dimensions_without_exif(self):
        meta = extract_metadata(make_jpeg(300, 200))
        assert (meta.width, meta.height) == (300, 200)
        assert meta.orientation == "landscape"
        assert meta.captured_at is None
        assert meta.camera_make is None

    def test_exif_fields(self):
        exif = Image.Exif()
        exif[271] = "Canon"
        exif[272] = "EOS R5"
        exif[306] = "2023:07:14 18:30:05"
        meta = extract_metadata(make_jpeg(100, 200, exif=exif))
        assert meta.camera_make == "Canon"
        assert meta.camera_model == "EOS R5"
        assert meta.captured_at == datetime(2023, 7, 14, 18, 30, 5)
        assert meta.orientation == "portrait"

    def test_rotated_orientation_swaps_dimensions(self):
        exif = Image.Exif()
        exif[274] = 6
        meta = extract_metadata(make_jpeg(300, 200, exif=exif))
        assert (meta.width, meta.height) == (200, 300)
        assert meta.orientation == "portrait"

    def test_bad_datetime_ignored(self):
        exif = Image.Exif()
        exif[306] = "not a date"
        assert extract_metadata(make_jpeg(exif=exif)).captured_at is None

    def test_undecodable_raises(self):
        with pytest.raises(UnsupportedFormatError):
            extract_metadata(b"garbage", "x.jpg")
