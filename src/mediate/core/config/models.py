"""
Pydantic configuration models for mediate.

These models provide type-safe configuration with validation for:
- Transport pipeline layers and their order
- Retry, rate limit and body buffering settings
- Logging
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from mediate.core.transports.throttling import RateLimitStrategy


# =============================================================================
# Enums
# =============================================================================


class LayerType(str, Enum):
    """Transport decorator layers."""

    RETRY = "retry"
    RATE_LIMIT = "rate_limit"
    RELIABLE_BODY = "reliable_body"


# =============================================================================
# Layer Configuration
# =============================================================================


class RetryConfig(BaseModel):
    """Fixed retry settings."""

    attempts: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Total attempts per request (not additional retries)",
    )
    buffer_request_body: bool = Field(
        default=True,
        description="Buffer streaming request bodies so attempts can replay them",
    )


class RateLimitConfig(BaseModel):
    """Rate limiting settings."""

    limit: int = Field(
        default=10,
        ge=1,
        description="Requests permitted per window",
    )
    window_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Window length in seconds",
    )
    strategy: RateLimitStrategy = Field(
        default=RateLimitStrategy.SLIDING_WINDOW,
        description="Admission strategy",
    )

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


class ReliableBodyConfig(BaseModel):
    """Response body buffering settings."""

    enabled: bool = Field(
        default=True,
        description="Buffer response bodies in memory",
    )


# =============================================================================
# Pipeline Configuration
# =============================================================================


class PipelineConfig(BaseModel):
    """Transport decorator pipeline.

    Layers are listed outermost first. The default retries the whole
    rate-limited, body-buffered exchange, so every attempt takes a permit
    and body read failures are retried.
    """

    layers: list[LayerType] = Field(
        default_factory=lambda: [
            LayerType.RETRY,
            LayerType.RATE_LIMIT,
            LayerType.RELIABLE_BODY,
        ],
        description="Decorator layers, outermost first",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    reliable_body: ReliableBodyConfig = Field(default_factory=ReliableBodyConfig)

    @field_validator("layers")
    @classmethod
    def layers_unique(cls, v: list[LayerType]) -> list[LayerType]:
        """Ensure each layer appears at most once."""
        if len(set(v)) != len(v):
            raise ValueError("each layer may appear at most once")
        return v


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def level_known(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from mediate.yaml.
    """

    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300.0,
        description="Client timeout in seconds",
    )
    user_agent: str | None = Field(
        default=None,
        description="User-Agent header for CLI requests",
    )
