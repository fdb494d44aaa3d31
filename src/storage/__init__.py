# src/storage/__init__.py — v1
"""Blob and record persistence backends."""
