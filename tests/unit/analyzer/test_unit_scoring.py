# tests/unit/analyzer/test_unit_scoring.py — v1
"""Tests for analyzer/scoring.py — reply parsing, weighting, tiers."""

from __future__ import annotations

import pytest

from photoingest.analyzer.scoring import (
    DEFAULT_DESCRIPTION,
    assign_tier,
    build_analysis,
    clamp_score,
    parse_scores,
    weighted_overall,
)
from photoingest.core.errors import InvalidAnalysisError

WEIGHTS = {"technical": 70, "commercial": 80, "artistic": 60, "emotional": 50}


class TestParseScores:
    def test_plain_json(self):
        raw = parse_scores('{"technical": 8, "commercial": 6, "artistic": 7, "emotional": 9, "analysis": "Nice."}')
        assert raw["technical"] == 8
        assert raw["analysis"] == "Nice."

    def test_fenced_json(self):
        text = '```json\n{"technical": 8, "commercial": 6, "artistic": 7, "emotional": 9}\n```'
        assert parse_scores(text)["emotional"] == 9

    def test_regex_fallback(self):
        text = "technical: 7.5, commercial: 6\nartistic: 8 emotional: 4 analysis: 'Soft light'"
        raw = parse_scores(text)
        assert raw["technical"] == 7.5
        assert raw["emotional"] == 4.0
        assert raw["analysis"] == "Soft light"

    def test_fallback_default_description(self):
        raw = parse_scores("technical: 7 and nothing else")
        assert raw["analysis"] == DEFAULT_DESCRIPTION

    def test_no_scores_raises(self):
        with pytest.raises(InvalidAnalysisError):
            parse_scores("I cannot evaluate this image.")


class TestWeightedOverall:
    def test_weighted_mean(self):
        scores = {"technical": 8, "commercial": 6, "artistic": 7, "emotional": 9}
        # (560 + 480 + 420 + 450) / 260
        assert weighted_overall(scores, WEIGHTS) == 7.3

    def test_equal_scores(self):
        scores = dict.fromkeys(WEIGHTS, 5.0)
        assert weighted_overall(scores, WEIGHTS) == 5.0

    def test_zero_weights_rejected(self):
        with pytest.raises(ValueError):
            weighted_overall(dict.fromkeys(WEIGHTS, 5.0), dict.fromkeys(WEIGHTS, 0))


class TestBuildAnalysis:
    def test_missing_dimension_defaults(self):
        result = build_analysis({"technical": 9}, WEIGHTS)
        assert result.technical_score == 9
        assert result.commercial_score == 5.0
        assert result.description == DEFAULT_DESCRIPTION

    def test_suffixed_keys_and_description(self):
        raw = {
            "technical_score": 8, "commercial_score": 8,
            "artistic_score": 8, "emotional_score": 8,
            "description": " Harbor at dusk. ",
        }
        result = build_analysis(raw, WEIGHTS)
        assert result.overall_score == 8.0
        assert result.description == "Harbor at dusk."

    def test_out_of_range_clamped(self):
        result = build_analysis({"technical": 14, "commercial": -2, "artistic": "x"}, WEIGHTS)
        assert result.technical_score == 10.0
        assert result.commercial_score == 0.0
        assert result.artistic_score == 5.0

    def test_clamp(self):
        assert clamp_score(11) == 10.0
        assert clamp_score(-1) == 0.0


class TestAssignTier:
    @pytest.mark.parametrize("overall,tier", [
        (9.2, "top"),
        (8.5, "top"),
        (8.4, "high"),
        (7.0, "high"),
        (6.9, "archive"),
        (0.0, "archive"),
    ])
    def test_thresholds(self, overall, tier):
        assert assign_tier(overall, 8.5, 7.0) == tier
