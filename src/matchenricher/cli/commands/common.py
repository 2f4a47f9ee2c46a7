"""
Helpers shared by CLI commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from matchenricher.core.config import AppConfig, ConfigError, load_app_config
from matchenricher.core.logging import setup_logging

err_console = Console(stderr=True)


def load_config_or_exit(config_path: Optional[Path]) -> AppConfig:
    """Load configuration, printing a readable error on failure."""
    try:
        return load_app_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def configure_logging(config: AppConfig, console: Console | None = None) -> None:
    """Apply the logging section of the configuration."""
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
        console=console,
    )


CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file (default: configs/enrich.yaml)",
)
