# src/session/__init__.py — v1
"""Ingestion session lifecycle, batching and progress."""
