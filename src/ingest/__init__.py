# src/ingest/__init__.py — v1
"""Candidate discovery, fingerprinting, duplicate lookup and pre-flight filtering."""
