"""Configuration loading and validation."""

from .models import (
    # Enums
    LayerType,
    # Config models
    AppConfig,
    LoggingConfig,
    PipelineConfig,
    RateLimitConfig,
    ReliableBodyConfig,
    RetryConfig,
)
from .loader import ConfigError, load_app_config, write_default_config

__all__ = [
    # Enums
    "LayerType",
    # Config models
    "AppConfig",
    "LoggingConfig",
    "PipelineConfig",
    "RateLimitConfig",
    "ReliableBodyConfig",
    "RetryConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "write_default_config",
]
