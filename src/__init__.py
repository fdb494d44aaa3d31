# src/__init__.py — v1
"""photoingest: bulk photo ingestion with AI quality scoring."""

from photoingest.version import __version__

__all__ = ["__version__"]
