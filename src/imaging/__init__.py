# src/imaging/__init__.py — v1
"""Format normalization, compression and EXIF metadata."""
