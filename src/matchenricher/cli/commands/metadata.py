"""
Metadata commands for normalizing legacy target files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from matchenricher.core.records import rewrite_metadata

from .common import CONFIG_OPTION, configure_logging, load_config_or_exit

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Normalize target file metadata",
    no_args_is_help=True,
)


@app.command("rewrite")
def rewrite(
    root: Path = typer.Argument(..., help="Data root with one metadata.txt per subdirectory"),
    files: Optional[list[str]] = typer.Option(
        None,
        "--file",
        help="File name to rewrite (repeatable, default: composed.json, repaired.json)",
    ),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Rewrite legacy files into the metadata + data layout.

    Examples:
        matchenricher metadata rewrite data/football
        matchenricher metadata rewrite data/football --file composed.json
    """
    config = load_config_or_exit(config_path)
    configure_logging(config, err_console)

    if not root.is_dir():
        err_console.print(f"[red]Directory not found:[/red] {root}")
        raise typer.Exit(1)

    rewritten = rewrite_metadata(root, files or config.enrichment.source_files)

    if rewritten:
        for path in rewritten:
            console.print(f"  [green]•[/green] {path}")
        console.print(f"[green]OK[/green] Rewrote {len(rewritten)} file(s)")
    else:
        console.print("[dim]Nothing to rewrite.[/dim]")
