"""
Checkpoint commands for inspecting and resolving an interrupted run.
"""

from __future__ import annotations

from typing import Optional
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from matchenricher.core.checkpoint import CheckpointStore
from matchenricher.core.records import PersistenceError, Target, is_sentinel

from .common import CONFIG_OPTION, configure_logging, load_config_or_exit

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect and resolve checkpoints",
    no_args_is_help=True,
)


def _store(config_path: Optional[Path]) -> CheckpointStore:
    config = load_config_or_exit(config_path)
    configure_logging(config, err_console)
    return CheckpointStore(config.checkpoint.path)


def _load_or_exit(store: CheckpointStore) -> Target | None:
    try:
        return store.load()
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Checkpoint at {store.path} is unreadable:[/red] {e}")
        raise typer.Exit(1)


@app.command("show")
def show_checkpoint(config_path: Optional[Path] = CONFIG_OPTION) -> None:
    """Show the checkpoint left by an interrupted run, if any."""
    store = _store(config_path)
    target = _load_or_exit(store)

    if target is None:
        console.print("[green]No checkpoint.[/green]")
        return

    results = [match.result for match in target.iter_matches()]
    found = sum(1 for r in results if r is not None and not is_sentinel(r))
    marked = sum(1 for r in results if r is not None and is_sentinel(r))
    pending = sum(1 for r in results if r is None)

    table = Table(title="Checkpoint", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("File", str(store.path))
    table.add_row("Target", target.identifier)
    table.add_row("Save path", str(target.save_path))
    table.add_row("Matches", str(len(results)))
    table.add_row("With stats", f"[green]{found}[/green]")
    table.add_row("Without stats", f"[yellow]{marked}[/yellow]")
    table.add_row("Pending", str(pending))
    console.print(table)
    console.print("[dim]Resolve it with:[/dim] matchenricher checkpoint resolve")


@app.command("resolve")
def resolve_checkpoint(config_path: Optional[Path] = CONFIG_OPTION) -> None:
    """Write the checkpoint over its target's save path, then remove it."""
    store = _store(config_path)
    try:
        target = store.reconcile()
    except (OSError, ValueError, PersistenceError) as e:
        err_console.print(f"[red]Failed to resolve checkpoint:[/red] {e}")
        raise typer.Exit(1)

    if target is None:
        console.print("[green]No checkpoint to resolve.[/green]")
        return
    console.print(f"[green]OK[/green] Restored {target.identifier} to {target.save_path}")


@app.command("clear")
def clear_checkpoint(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Delete the checkpoint without restoring it."""
    store = _store(config_path)
    if not store.exists():
        console.print("[green]No checkpoint.[/green]")
        return

    if not yes and not typer.confirm("The checkpointed progress will be lost. Continue?", default=False):
        raise typer.Abort()

    store.clear()
    console.print(f"[green]OK[/green] Removed {store.path}")
