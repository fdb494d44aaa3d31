# src/analyzer/client_factory.py — v1
"""Factory: instantiate the remote analyzer client from configuration."""

from __future__ import annotations

from photoingest.analyzer.base_client import BaseAnalyzerClient
from photoingest.config.settings import Settings


def create_analyzer(settings: Settings) -> BaseAnalyzerClient:
    """Create the analyzer named by ANALYZER_PROVIDER.

    Raises:
        ValueError: If the provider is not supported.
    """
    if settings.analyzer_provider == "anthropic":
        from photoingest.analyzer.anthropic_analyzer import AnthropicAnalyzer
        return AnthropicAnalyzer(
            weights=settings.score_weights,
            model=settings.analyzer_model,
            api_key=settings.anthropic_api_key or None,
            max_tokens=settings.analyzer_max_tokens,
        )

    raise ValueError(f"Unsupported analyzer provider: {settings.analyzer_provider!r}")
