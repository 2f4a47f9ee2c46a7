"""
MatchEnricher CLI - Main entry point.

Drives a paced, resumable enrichment of match records with an
external stats source, with live progress over server-sent events.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from matchenricher import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows to avoid encoding issues
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            try:
                stream.reconfigure(encoding="utf-8", errors="replace")
            except (AttributeError, OSError):
                pass

console = Console()
err_console = Console(stderr=True)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Paced, resumable match stats enrichment",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """MatchEnricher - enrich match records with stats."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import checkpoint, enrich, metadata  # noqa: E402

app.command("run")(enrich.run_command)
app.command("plan")(enrich.plan_command)
app.add_typer(checkpoint.app, name="checkpoint", help="Inspect and resolve checkpoints")
app.add_typer(metadata.app, name="metadata", help="Normalize target file metadata")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Create the default configuration and working directories."""
    from matchenricher.core.config import write_default_config
    from matchenricher.core.config.loader import DEFAULT_CONFIG_PATH

    for dir_path in (Path("data"), Path("logs")):
        dir_path.mkdir(parents=True, exist_ok=True)

    written = write_default_config(DEFAULT_CONFIG_PATH, force=force)
    config_line = (
        f"  - [cyan]{DEFAULT_CONFIG_PATH}[/cyan] - Application configuration\n"
        if written
        else f"  - [dim]{DEFAULT_CONFIG_PATH} already exists (use --force to overwrite)[/dim]\n"
    )

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - MatchEnricher initialized![/bold green]\n\n"
        "Created:\n"
        f"{config_line}"
        "  - [cyan]data/[/cyan] - Target files and checkpoint\n"
        "  - [cyan]logs/[/cyan] - Log files\n\n"
        "Next steps:\n"
        "  1. Preview the work: [yellow]matchenricher plan data[/yellow]\n"
        "  2. Run it: [yellow]matchenricher run data[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
