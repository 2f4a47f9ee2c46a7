"""
Pydantic configuration models for MatchEnricher.

These models provide type-safe configuration with validation for:
- Enrichment behavior (pacing, redo modes)
- Retry and reconnect policy
- Checkpoint location
- Progress server
- Logging
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from matchenricher.core.fetch.retries import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_WAIT_FOR_RECONNECT_MS,
    DEFAULT_PROBE_INTERVAL,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_PROBE_URL,
)


# =============================================================================
# Enrichment Configuration
# =============================================================================


class EnrichmentConfig(BaseModel):
    """Which matches are fetched and how fast."""

    delay_ms: int | None = Field(
        default=None,
        ge=0,
        description="Fixed delay between matches; overrides jitter when set",
    )
    min_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Minimum jittered delay between matches in milliseconds",
    )
    max_delay_ms: int = Field(
        default=4000,
        ge=0,
        description="Maximum jittered delay between matches in milliseconds",
    )
    redo_all: bool = Field(
        default=False,
        description="Re-fetch every match with a stats URL, whatever its result",
    )
    redo_marked: bool = Field(
        default=False,
        description="Re-fetch matches previously marked as having no stats",
    )
    source_files: list[str] = Field(
        default_factory=lambda: ["composed.json", "repaired.json"],
        description="File names treated as enrichment targets",
    )

    @field_validator("max_delay_ms")
    @classmethod
    def max_delay_gte_min(cls, v: int, info: Any) -> int:
        """Ensure max delay is at least min delay."""
        min_delay = info.data.get("min_delay_ms", 0)
        if v < min_delay:
            raise ValueError("max_delay_ms must be >= min_delay_ms")
        return v


# =============================================================================
# Retry Configuration
# =============================================================================


class RetrySettings(BaseModel):
    """Bounded retry with network reconnect polling."""

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        le=10,
        description="Retries after the first attempt for network failures",
    )
    max_wait_for_reconnect_ms: int = Field(
        default=DEFAULT_MAX_WAIT_FOR_RECONNECT_MS,
        ge=0,
        description="How long to wait for the network to come back",
    )
    probe_url: str = Field(
        default=DEFAULT_PROBE_URL,
        description="Known-reachable endpoint polled while offline",
    )
    probe_interval_seconds: float = Field(
        default=DEFAULT_PROBE_INTERVAL,
        gt=0,
        description="Seconds between reconnect probes",
    )
    probe_timeout_seconds: float = Field(
        default=DEFAULT_PROBE_TIMEOUT,
        gt=0,
        description="Timeout of a single probe request",
    )


# =============================================================================
# Fetcher Configuration
# =============================================================================


class FetcherConfig(BaseModel):
    """Fetch function selection."""

    import_path: str | None = Field(
        default=None,
        description="Custom fetcher as 'package.module:callable'",
    )
    timeout_seconds: float = Field(
        default=45.0,
        ge=1.0,
        le=300.0,
        description="Request timeout of the default HTTP fetcher",
    )
    user_agent: str | None = Field(
        default=None,
        description="User agent of the default HTTP fetcher",
    )


# =============================================================================
# Checkpoint Configuration
# =============================================================================


class CheckpointConfig(BaseModel):
    """Crash checkpoint settings."""

    path: Path = Field(
        default=Path("data/checkpoint.json"),
        description="Location of the single checkpoint file",
    )
    handle_signals: bool = Field(
        default=True,
        description="Checkpoint the in-flight target on SIGINT/SIGTERM",
    )


# =============================================================================
# Server Configuration
# =============================================================================


class ServerConfig(BaseModel):
    """Progress stream server."""

    enabled: bool = Field(
        default=True,
        description="Serve the progress stream while enriching",
    )
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=9090, ge=1, le=65535)
    keep_alive: bool = Field(
        default=False,
        description="Keep serving the final event after the run until stopped",
    )
    progress_route: str = Field(default="/enrichment-progress")
    stop_route: str = Field(default="/stop-server")

    @model_validator(mode="after")
    def routes_distinct(self) -> ServerConfig:
        if self.progress_route == self.stop_route:
            raise ValueError("progress_route and stop_route must differ")
        return self


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
        default=Path("logs/matchenricher.log"),
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


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from enrich.yaml.
    """

    data_dir: Path = Field(
        default=Path("data"),
        description="Root directory scanned for targets",
    )

    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.checkpoint.path.parent.mkdir(parents=True, exist_ok=True)
        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
