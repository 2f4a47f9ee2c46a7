"""Configuration loading and validation."""

from .models import (
    AppConfig,
    CheckpointConfig,
    EnrichmentConfig,
    FetcherConfig,
    LoggingConfig,
    RetrySettings,
    ServerConfig,
)
from .loader import (
    ConfigError,
    load_app_config,
    validate_config_file,
    write_default_config,
)

__all__ = [
    # Config models
    "AppConfig",
    "CheckpointConfig",
    "EnrichmentConfig",
    "FetcherConfig",
    "LoggingConfig",
    "RetrySettings",
    "ServerConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_config_file",
    "write_default_config",
]
