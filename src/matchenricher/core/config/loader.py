"""
Configuration loader for YAML files.

Loads and validates configuration from YAML files into Pydantic models.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from matchenricher.core.errors import ConfigurationError

from .models import AppConfig


DEFAULT_CONFIG_PATH = Path("configs/enrich.yaml")

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(ConfigurationError):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

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
    def expand_value(value: Any) -> Any:
        if isinstance(value, str):
            def replacer(match: re.Match[str]) -> str:
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return _ENV_PATTERN.sub(replacer, value)
        elif isinstance(value, dict):
            return {k: expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [expand_value(item) for item in value]
        return value

    return expand_value(data)


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
) -> AppConfig:
    """Load application configuration from YAML file.

    Args:
        path: Path to enrich.yaml (default: configs/enrich.yaml)
        expand_env: Whether to expand environment variables

    Returns:
        Validated AppConfig instance; defaults if the default file is absent

    Raises:
        ConfigError: If configuration is invalid, or an explicit path is missing
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
        # If the default file doesn't exist, return defaults
        if not path.exists():
            return AppConfig()
    else:
        path = Path(path)

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


def validate_config_file(path: Path | str) -> list[str]:
    """Validate a configuration file without loading it.

    Returns:
        List of validation error messages (empty if valid)
    """
    path = Path(path)
    errors: list[str] = []

    try:
        data = _load_yaml_file(path)
    except ConfigError as e:
        errors.append(str(e))
        return errors

    try:
        AppConfig.model_validate(_expand_env_vars(data))
    except ValidationError as e:
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"{loc}: {error['msg']}")

    return errors


DEFAULT_CONFIG_YAML = """\
# MatchEnricher Configuration
# Values support ${VAR} and ${VAR:-default} expansion

# Root directory scanned for composed.json / repaired.json
data_dir: data

enrichment:
  # Fixed delay between matches (ms); leave unset for 1-4s jitter
  delay_ms: null
  min_delay_ms: 1000
  max_delay_ms: 4000
  redo_all: false
  redo_marked: false

retry:
  max_retries: 3
  max_wait_for_reconnect_ms: 600000
  probe_url: https://www.google.com
  probe_interval_seconds: 5

fetcher:
  # import_path: mypackage.stats:fetch_stats
  timeout_seconds: 45

checkpoint:
  path: data/checkpoint.json
  handle_signals: true

server:
  enabled: true
  host: 127.0.0.1
  port: 9090
  keep_alive: false

logging:
  level: INFO
  file: logs/matchenricher.log
  json_format: true
  rich_console: true
"""


def write_default_config(path: Path | str = DEFAULT_CONFIG_PATH, force: bool = False) -> bool:
    """Write the default configuration file.

    Returns:
        True if written, False if it already existed and ``force`` is off
    """
    path = Path(path)
    if path.exists() and not force:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    return True
