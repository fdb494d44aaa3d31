# src/analyzer/base_client.py — v1
"""Abstract remote analyzer interface.

Implementations submit image bytes and return an AnalysisResult, or raise
one of RateLimitedError, QuotaExceededError, TransientAnalyzerError,
InvalidAnalysisError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from photoingest.core.models import AnalysisResult


class BaseAnalyzerClient(ABC):
    """Unified interface for photo scoring services."""

    @abstractmethod
    async def analyze(self, image_bytes: bytes, filename: str) -> AnalysisResult:
        """Score one JPEG image."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, ...)."""
