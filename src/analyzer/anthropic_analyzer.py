# src/analyzer/anthropic_analyzer.py — v1
"""Anthropic Claude vision adapter implementing BaseAnalyzerClient.

Sends the compressed JPEG with a scoring prompt, parses the four dimension
scores and computes the weighted overall score locally. SDK errors are
mapped onto the analyzer error taxonomy so the retry layer can tell a
rate limit from an exhausted quota.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

import anthropic

from photoingest.analyzer.base_client import BaseAnalyzerClient
from photoingest.analyzer.scoring import build_analysis, parse_scores
from photoingest.core.errors import (
    AnalyzerError,
    InvalidAnalysisError,
    QuotaExceededError,
    RateLimitedError,
    TransientAnalyzerError,
)
from photoingest.core.models import AnalysisResult

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = "You are an expert photo curator. Return only valid JSON."

_SCORING_PROMPT = """Evaluate this photograph. Respond with a JSON object:
{
  "technical": score 0-10 for focus, exposure, noise and composition,
  "commercial": score 0-10 for stock or print sales potential,
  "artistic": score 0-10 for creativity and visual impact,
  "emotional": score 0-10 for storytelling and emotional resonance,
  "analysis": two sentences describing the photo and its strongest quality
}"""

_QUOTA_MARKERS = ("credit balance", "quota", "billing")


def map_api_error(error: Exception) -> AnalyzerError:
    """Translate an anthropic SDK exception into an AnalyzerError."""
    if isinstance(error, anthropic.RateLimitError):
        return RateLimitedError(str(error))
    if isinstance(error, anthropic.APIStatusError):
        message = str(error).lower()
        if error.status_code == 402 or any(m in message for m in _QUOTA_MARKERS):
            return QuotaExceededError(str(error))
        return TransientAnalyzerError(f"HTTP {error.status_code}: {error}")
    if isinstance(error, anthropic.APIConnectionError):
        return TransientAnalyzerError(f"Connection error: {error}")
    return TransientAnalyzerError(str(error))


class AnthropicAnalyzer(BaseAnalyzerClient):
    """Score photos with a Claude vision model."""

    def __init__(
        self,
        weights: dict[str, float],
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        max_tokens: int = 1024,
        client: Any = None,
    ) -> None:
        self._weights = weights
        self._model = model
        self._api_key = api_key
        self._max_tokens = max_tokens
        self.__client = client

    @property
    def _client(self) -> Any:
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or None)
        return self.__client

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def analyze(self, image_bytes: bytes, filename: str) -> AnalysisResult:
        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": _SYSTEM_PROMPT,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/jpeg",
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            },
                        },
                        {"type": "text", "text": _SCORING_PROMPT},
                    ],
                }
            ],
        }

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**params)
        except anthropic.APIError as e:
            raise map_api_error(e) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        text = self._extract_text(response)
        if not text:
            raise InvalidAnalysisError(f"Empty analyzer reply for {filename}")

        result = build_analysis(parse_scores(text), self._weights)
        logger.info(
            "Analyzed %s: overall=%.1f (%dms)", filename, result.overall_score, latency_ms,
        )
        return result

    @staticmethod
    def _extract_text(response: Any) -> str:
        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        return ""
