# src/analyzer/scoring.py — v1
"""Score parsing, weighting and tier assignment.

The analyzer model returns four dimension scores and a short analysis as
JSON. Replies are sometimes wrapped in markdown fences or are not valid
JSON at all; parse_scores() strips fences and falls back to a regex scan.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from photoingest.core.errors import InvalidAnalysisError
from photoingest.core.models import AnalysisResult, QualityTier

logger = logging.getLogger(__name__)

DIMENSIONS: tuple[str, ...] = ("technical", "commercial", "artistic", "emotional")
DEFAULT_DIMENSION_SCORE = 5.0
DEFAULT_DESCRIPTION = "A memorable moment captured in time."

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_ANALYSIS_RE = re.compile(r"[\"']?analysis[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE)


def _dimension_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"[\"']?{name}[\"']?\s*:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


def clamp_score(value: float) -> float:
    return min(10.0, max(0.0, float(value)))


def parse_scores(text: str) -> dict[str, Any]:
    """Extract dimension scores and the analysis text from a model reply.

    Raises:
        InvalidAnalysisError: If the reply contains no recognizable score.
    """
    content = _FENCE_RE.sub("", text).strip()

    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    logger.warning("Analyzer reply is not valid JSON, using fallback parsing")
    parsed: dict[str, Any] = {}
    for name in DIMENSIONS:
        match = _dimension_re(name).search(content)
        if match:
            parsed[name] = float(match.group(1))
    if not parsed:
        raise InvalidAnalysisError(f"No scores found in analyzer reply: {content[:200]!r}")

    analysis = _ANALYSIS_RE.search(content)
    parsed["analysis"] = analysis.group(1) if analysis else DEFAULT_DESCRIPTION
    return parsed


def weighted_overall(scores: dict[str, float], weights: dict[str, float]) -> float:
    """Weighted mean of the dimension scores, rounded to one decimal."""
    total_weight = sum(weights.get(d, 0.0) for d in DIMENSIONS)
    if total_weight <= 0:
        raise ValueError("Score weights must have a positive sum")
    overall = sum(scores[d] * weights.get(d, 0.0) for d in DIMENSIONS) / total_weight
    return round(clamp_score(overall), 1)


def build_analysis(raw: dict[str, Any], weights: dict[str, float]) -> AnalysisResult:
    """Turn parsed model output into a validated AnalysisResult."""
    scores: dict[str, float] = {}
    for name in DIMENSIONS:
        value = raw.get(name, raw.get(f"{name}_score", DEFAULT_DIMENSION_SCORE))
        try:
            scores[name] = clamp_score(float(value))
        except (TypeError, ValueError):
            scores[name] = DEFAULT_DIMENSION_SCORE

    description = raw.get("analysis") or raw.get("description") or DEFAULT_DESCRIPTION

    return AnalysisResult(
        technical_score=scores["technical"],
        commercial_score=scores["commercial"],
        artistic_score=scores["artistic"],
        emotional_score=scores["emotional"],
        overall_score=weighted_overall(scores, weights),
        description=str(description).strip(),
    )


def assign_tier(overall: float, top_threshold: float, high_threshold: float) -> QualityTier:
    """Bucket an overall score. Thresholds are inclusive lower bounds."""
    if overall >= top_threshold:
        return "top"
    if overall >= high_threshold:
        return "high"
    return "archive"
