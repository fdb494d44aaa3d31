# tests/unit/analyzer/test_unit_anthropic_analyzer.py — v1
"""Tests for analyzer/anthropic_analyzer.py — request shape and error mapping."""

from __future__ import annotations

import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from photoingest.analyzer.anthropic_analyzer import AnthropicAnalyzer, map_api_error
from photoingest.analyzer.client_factory import create_analyzer
from photoingest.config.settings import Settings
from photoingest.core.errors import (
    InvalidAnalysisError,
    QuotaExceededError,
    RateLimitedError,
    TransientAnalyzerError,
)

WEIGHTS = {"technical": 70, "commercial": 80, "artistic": 60, "emotional": 50}
_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status: int, message: str = "error"):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


def _reply(text: str):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def _mock_client(response=None, side_effect=None):
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class TestMapApiError:
    def test_rate_limit(self):
        err = _status_error(anthropic.RateLimitError, 429, "Too many requests")
        assert isinstance(map_api_error(err), RateLimitedError)

    def test_payment_required_is_quota(self):
        err = _status_error(anthropic.APIStatusError, 402, "Payment required")
        assert isinstance(map_api_error(err), QuotaExceededError)

    def test_credit_balance_message_is_quota(self):
        err = _status_error(
            anthropic.BadRequestError, 400, "Your credit balance is too low",
        )
        assert isinstance(map_api_error(err), QuotaExceededError)

    def test_server_error_is_transient(self):
        err = _status_error(anthropic.InternalServerError, 500, "Overloaded")
        mapped = map_api_error(err)
        assert isinstance(mapped, TransientAnalyzerError)
        assert "500" in str(mapped)

    def test_connection_error_is_transient(self):
        err = anthropic.APIConnectionError(request=_REQUEST)
        assert isinstance(map_api_error(err), TransientAnalyzerError)


class TestAnthropicAnalyzer:
    @pytest.mark.asyncio
    async def test_success(self):
        client = _mock_client(_reply(
            '{"technical": 9, "commercial": 9, "artistic": 9, "emotional": 9, "analysis": "Great."}'
        ))
        analyzer = AnthropicAnalyzer(WEIGHTS, client=client)
        result = await analyzer.analyze(b"jpeg-bytes", "a.jpg")

        assert result.overall_score == 9.0
        assert result.description == "Great."
        kwargs = client.messages.create.call_args.kwargs
        image_block = kwargs["messages"][0]["content"][0]
        assert image_block["source"]["media_type"] == "image/jpeg"
        assert base64.b64decode(image_block["source"]["data"]) == b"jpeg-bytes"

    @pytest.mark.asyncio
    async def test_rate_limit_raised_as_analyzer_error(self):
        client = _mock_client(side_effect=_status_error(anthropic.RateLimitError, 429))
        with pytest.raises(RateLimitedError):
            await AnthropicAnalyzer(WEIGHTS, client=client).analyze(b"x", "a.jpg")

    @pytest.mark.asyncio
    async def test_quota_raised(self):
        client = _mock_client(side_effect=_status_error(anthropic.APIStatusError, 402))
        with pytest.raises(QuotaExceededError):
            await AnthropicAnalyzer(WEIGHTS, client=client).analyze(b"x", "a.jpg")

    @pytest.mark.asyncio
    async def test_empty_reply_invalid(self):
        client = _mock_client(SimpleNamespace(content=[]))
        with pytest.raises(InvalidAnalysisError):
            await AnthropicAnalyzer(WEIGHTS, client=client).analyze(b"x", "a.jpg")

    def test_provider_name(self):
        assert AnthropicAnalyzer(WEIGHTS, client=MagicMock()).provider_name == "anthropic"


class TestClientFactory:
    def test_creates_anthropic(self):
        s = Settings(_env_file=None, anthropic_api_key="sk-test")
        analyzer = create_analyzer(s)
        assert isinstance(analyzer, AnthropicAnalyzer)
