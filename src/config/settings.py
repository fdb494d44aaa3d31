# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for batch pacing, retry policy, tier thresholds,
imaging limits, analyzer credentials, storage backend and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from photoingest.core.models import FilterOptions


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Batch scheduling ===
    batch_size: int = 10
    inter_batch_delay_ms: int = 500

    # === Retry policy ===
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 1000
    rate_limit_cooldown_s: float = 60.0

    # === Quality tiers (applied to overall score) ===
    tier_top_threshold: float = 8.5
    tier_high_threshold: float = 7.0

    # === Scoring weights ===
    score_weight_technical: float = 70.0
    score_weight_commercial: float = 80.0
    score_weight_artistic: float = 60.0
    score_weight_emotional: float = 50.0

    # === Pre-flight filter defaults ===
    filter_skip_small_files: bool = True
    filter_min_file_size_kb: int = 100
    filter_skip_screenshots: bool = True
    filter_skip_existing: bool = True

    # === Scan estimates ===
    scan_cost_per_file_usd: float = 0.002
    scan_seconds_per_file: float = 3.0

    # === Imaging ===
    compress_max_dimension: int = 1920
    compress_quality: int = 85
    compress_max_size_mb: float = 1.0
    thumbnail_max_dimension: int = 400
    thumbnail_quality: int = 80
    heic_jpeg_quality: int = 90

    # === Remote analyzer ===
    analyzer_provider: Literal["anthropic"] = "anthropic"
    analyzer_model: str = "claude-sonnet-4-20250514"
    analyzer_max_tokens: int = 1024
    anthropic_api_key: str = ""

    # === Storage ===
    storage_backend: Literal["memory", "local"] = "memory"
    storage_root: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("batch_size", "retry_max_attempts")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @field_validator(
        "inter_batch_delay_ms", "retry_base_delay_ms", "filter_min_file_size_kb",
    )
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("compress_quality", "thumbnail_quality", "heic_jpeg_quality")
    @classmethod
    def validate_quality(cls, v: int, info) -> int:  # noqa: N805
        if not 1 <= v <= 100:
            raise ValueError(f"{info.field_name} must be within 1..100")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field consistency rules."""
        errors: list[str] = []

        if self.tier_high_threshold > self.tier_top_threshold:
            errors.append(
                "TIER_HIGH_THRESHOLD must be <= TIER_TOP_THRESHOLD"
            )

        weights = (
            self.score_weight_technical,
            self.score_weight_commercial,
            self.score_weight_artistic,
            self.score_weight_emotional,
        )
        if any(w < 0 for w in weights) or sum(weights) <= 0:
            errors.append("SCORE_WEIGHT_* must be non-negative with a positive sum")

        if self.thumbnail_max_dimension > self.compress_max_dimension:
            errors.append(
                "THUMBNAIL_MAX_DIMENSION must be <= COMPRESS_MAX_DIMENSION"
            )

        if self.rate_limit_cooldown_s < 0:
            errors.append("RATE_LIMIT_COOLDOWN_S must be >= 0")

        if self.storage_backend == "local" and self.storage_root is None:
            errors.append("STORAGE_ROOT is required when STORAGE_BACKEND=local")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def inter_batch_delay_s(self) -> float:
        return self.inter_batch_delay_ms / 1000.0

    @property
    def score_weights(self) -> dict[str, float]:
        """Weights keyed by score dimension."""
        return {
            "technical": self.score_weight_technical,
            "commercial": self.score_weight_commercial,
            "artistic": self.score_weight_artistic,
            "emotional": self.score_weight_emotional,
        }

    def to_filter_options(self) -> FilterOptions:
        """Default FilterOptions derived from the filter_* settings."""
        return FilterOptions(
            skip_small_files=self.filter_skip_small_files,
            min_file_size_kb=self.filter_min_file_size_kb,
            skip_screenshots=self.filter_skip_screenshots,
            skip_existing=self.filter_skip_existing,
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-session config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
