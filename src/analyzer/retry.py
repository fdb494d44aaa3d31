# src/analyzer/retry.py — v1
"""Bounded retry with exponential backoff, plus the analyzer specialization.

with_retry() is generic: after failed attempt n (1-based) it sleeps
2**n * base_delay_ms before the next one. RetryingAnalyzer adds one rule
on top: a rate-limit signal gets a single long cooldown and one extra
attempt outside the exponential schedule. Quota exhaustion is never
retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from photoingest.core.errors import (
    AnalyzerError,
    DuplicateRecordError,
    QuotaExceededError,
    RateLimitedError,
    RetryExhaustedError,
    StorageError,
)

if TYPE_CHECKING:
    from photoingest.analyzer.base_client import BaseAnalyzerClient
    from photoingest.config.settings import Settings
    from photoingest.core.models import AnalysisResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for analyzer calls."""

    max_attempts: int = 3
    base_delay_ms: int = 1000
    rate_limit_cooldown_s: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_ms=settings.retry_base_delay_ms,
            rate_limit_cooldown_s=settings.rate_limit_cooldown_s,
        )


def is_retryable(error: Exception) -> bool:
    """Transient analyzer, storage and I/O failures are retried.

    Quota exhaustion and duplicate inserts are final.
    """
    if isinstance(error, (QuotaExceededError, DuplicateRecordError)):
        return False
    return isinstance(error, (AnalyzerError, StorageError, OSError))


def backoff_delay_s(attempt: int, base_delay_ms: int) -> float:
    """Delay after failed attempt ``attempt`` (1-based)."""
    return (2**attempt) * base_delay_ms / 1000.0


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    *,
    base_delay_ms: int = 1000,
    retryable: Callable[[Exception], bool] = is_retryable,
    sleep: SleepFn = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    Raises:
        RetryExhaustedError: If every attempt failed with a retryable error.
        Exception: The first non-retryable error, unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not retryable(e):
                raise
            if attempt == max_attempts:
                raise RetryExhaustedError(label, attempt, e) from e
            delay = backoff_delay_s(attempt, base_delay_ms)
            logger.warning(
                "%s failed (attempt %d/%d): %s, retrying in %.1fs",
                label, attempt, max_attempts, e, delay,
            )
            await sleep(delay)

    raise AssertionError("unreachable")


class RetryingAnalyzer:
    """Analyzer wrapper applying the retry policy and the rate-limit cooldown."""

    def __init__(
        self,
        client: BaseAnalyzerClient,
        policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    async def analyze(self, image_bytes: bytes, filename: str) -> AnalysisResult:
        """Analyze with retries.

        Raises:
            QuotaExceededError: Immediately, on the first quota signal.
            RetryExhaustedError: When every attempt failed.
        """
        cooldown_used = False

        async def attempt() -> AnalysisResult:
            nonlocal cooldown_used
            try:
                return await self._client.analyze(image_bytes, filename)
            except RateLimitedError:
                if cooldown_used:
                    raise
                cooldown_used = True
                logger.warning(
                    "Rate limited on %s, cooling down %.0fs before one extra attempt",
                    filename, self._policy.rate_limit_cooldown_s,
                )
                await self._sleep(self._policy.rate_limit_cooldown_s)
                return await self._client.analyze(image_bytes, filename)

        return await with_retry(
            attempt,
            self._policy.max_attempts,
            base_delay_ms=self._policy.base_delay_ms,
            sleep=self._sleep,
            label=f"analyze {filename}",
        )
