"""
Configuration loader for YAML files.

Loads and validates configuration from YAML files into Pydantic models.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from .models import AppConfig

if TYPE_CHECKING:
    from typing import Any


DEFAULT_CONFIG_PATH = Path("mediate.yaml")

# Environment variable that overrides the default config path
CONFIG_PATH_ENV = "MEDIATE_CONFIG"

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.details:
            return f"{message}: {self.details}"
        return message


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML contents

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}", path=path)
    return data


def _expand_env_vars(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand environment variables in string values.

    Supports ${VAR} and ${VAR:-default} syntax.
    """
    def replacer(match: re.Match[str]) -> str:
        return os.environ.get(match.group(1), match.group(2) or "")

    def expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_PATTERN.sub(replacer, value)
        elif isinstance(value, dict):
            return {k: expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [expand_value(item) for item in value]
        return value

    return expand_value(data)


def resolve_config_path(path: Path | str | None = None) -> Path:
    """Pick the config path: explicit, then $MEDIATE_CONFIG, then mediate.yaml."""
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
) -> AppConfig:
    """Load application configuration from YAML file.

    Args:
        path: Path to the config file (default: $MEDIATE_CONFIG or mediate.yaml)
        expand_env: Whether to expand environment variables

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    explicit = path is not None
    path = resolve_config_path(path)

    # A missing default file means defaults; a missing explicit file is an error
    if not path.exists() and not explicit:
        return AppConfig()

    data = _load_yaml_file(path)

    if expand_env:
        data = _expand_env_vars(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {path}",
            path=path,
            details=str(e),
        ) from e


DEFAULT_CONFIG_TEMPLATE = """\
# mediate configuration

# Transport pipeline, outermost layer first
pipeline:
  layers: [retry, rate_limit, reliable_body]
  retry:
    attempts: 3
    buffer_request_body: true
  rate_limit:
    limit: 10
    window_seconds: 1.0
    strategy: sliding_window
  reliable_body:
    enabled: true

# Logging settings
logging:
  level: ${MEDIATE_LOG_LEVEL:-INFO}
  json_format: true
  rich_console: true

timeout_seconds: 30
"""


def write_default_config(path: Path | str, force: bool = False) -> Path:
    """Write the default configuration template.

    Raises:
        ConfigError: If the file exists and force is not set
    """
    path = Path(path)
    if path.exists() and not force:
        raise ConfigError(f"Configuration file already exists: {path}", path=path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return path
