"""
Enrichment commands: run a full enrichment and preview its plan.
"""

from __future__ import annotations

import asyncio
import inspect
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from matchenricher.core.config import AppConfig
from matchenricher.core.errors import ConfigurationError
from matchenricher.core.fetch import FetchFn, HttpStatsFetcher, load_fetcher
from matchenricher.core.orchestrator import EnrichmentRunner, RunStats, UnitPlanner
from matchenricher.core.progress import ProgressBroadcaster, ProgressSnapshot
from matchenricher.core.records import JsonTargetProvider

from .common import CONFIG_OPTION, configure_logging, load_config_or_exit

console = Console()
err_console = Console(stderr=True)


def _apply_overrides(
    config: AppConfig,
    *,
    delay_ms: Optional[int],
    redo_all: Optional[bool],
    redo_marked: Optional[bool],
    max_retries: Optional[int],
    serve: Optional[bool],
    port: Optional[int],
    keep_alive: Optional[bool],
    fetcher: Optional[str],
) -> AppConfig:
    """Layer command-line flags over file configuration."""
    enrichment = {
        k: v for k, v in {
            "delay_ms": delay_ms,
            "redo_all": redo_all,
            "redo_marked": redo_marked,
        }.items() if v is not None
    }
    server = {
        k: v for k, v in {
            "enabled": serve,
            "port": port,
            "keep_alive": keep_alive,
        }.items() if v is not None
    }

    updates: dict[str, object] = {
        "enrichment": config.enrichment.model_copy(update=enrichment),
        "server": config.server.model_copy(update=server),
    }
    if max_retries is not None:
        updates["retry"] = config.retry.model_copy(update={"max_retries": max_retries})
    if fetcher is not None:
        updates["fetcher"] = config.fetcher.model_copy(update={"import_path": fetcher})
    return config.model_copy(update=updates)


def _build_fetcher(config: AppConfig) -> FetchFn:
    if config.fetcher.import_path:
        return load_fetcher(config.fetcher.import_path)
    return HttpStatsFetcher(
        timeout=config.fetcher.timeout_seconds,
        user_agent=config.fetcher.user_agent,
    )


async def _close_fetcher(fetch: FetchFn) -> None:
    close = getattr(fetch, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


async def _enrich(config: AppConfig, data_dir: Path, fetch: FetchFn) -> RunStats:
    """Run the enrichment, with the progress server and a live progress bar."""
    from matchenricher.server import ProgressServer

    broadcaster = ProgressBroadcaster()
    server = ProgressServer.from_config(config.server, broadcaster) if config.server.enabled else None

    try:
        if server is not None:
            await server.start()
            console.print(f"[dim]Progress stream: {server.url.rstrip('/')}{config.server.progress_route}[/dim]")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            configure_logging(config, progress.console)
            task = progress.add_task("[cyan]Planning...[/cyan]", total=None)

            def show(snapshot: ProgressSnapshot) -> None:
                label = snapshot.unit_identifier or "Enrichment"
                progress.update(
                    task,
                    completed=snapshot.completed,
                    total=snapshot.total or None,
                    description=f"[cyan]{label}[/cyan] [dim]unit {snapshot.unit_counter}/{snapshot.total_units}[/dim]",
                )

            unsubscribe = broadcaster.subscribe(show)
            try:
                runner = EnrichmentRunner.from_config(config, fetch, broadcaster=broadcaster)
                stats = await runner.run(data_dir)
            finally:
                unsubscribe()

        if server is not None and config.server.keep_alive:
            console.print("[yellow]Keeping the progress server alive until a stop is requested[/yellow]")
            await server.wait_for_stop()
    finally:
        if server is not None:
            await server.stop()
        await _close_fetcher(fetch)

    return stats


def run_command(
    data_dir: Optional[Path] = typer.Argument(
        None,
        help="Directory scanned for composed.json / repaired.json files (default: data_dir from config)",
    ),
    delay_ms: Optional[int] = typer.Option(
        None,
        "--delay-ms",
        "-d",
        help="Fixed delay between matches in milliseconds (default: 1-4s jitter)",
    ),
    redo_all: Optional[bool] = typer.Option(
        None,
        "--redo-all",
        help="Re-fetch every match, including those already enriched",
    ),
    redo_marked: Optional[bool] = typer.Option(
        None,
        "--redo-marked",
        help="Re-fetch matches previously marked as having no stats",
    ),
    max_retries: Optional[int] = typer.Option(
        None,
        "--max-retries",
        "-r",
        help="Retries after the first attempt on network errors",
    ),
    serve: Optional[bool] = typer.Option(
        None,
        "--serve/--no-serve",
        help="Expose the SSE progress stream while running",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port for the progress server",
    ),
    keep_alive: Optional[bool] = typer.Option(
        None,
        "--keep-alive",
        help="Keep the progress server up after the run until stopped",
    ),
    fetcher: Optional[str] = typer.Option(
        None,
        "--fetcher",
        "-f",
        help="Custom fetch callable as package.module:attribute",
    ),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Enrich every eligible match under DATA_DIR.

    Examples:
        matchenricher run
        matchenricher run data/football
        matchenricher run data/football --redo-marked --delay-ms 2000
        matchenricher run data/football --no-serve -f mypkg.stats:fetch
    """
    config = _apply_overrides(
        load_config_or_exit(config_path),
        delay_ms=delay_ms,
        redo_all=redo_all,
        redo_marked=redo_marked,
        max_retries=max_retries,
        serve=serve,
        port=port,
        keep_alive=keep_alive,
        fetcher=fetcher,
    )
    config.ensure_directories()
    data_dir = data_dir or config.data_dir

    console.print()
    console.print(f"[bold]Starting enrichment for:[/bold] {data_dir}")
    if config.enrichment.redo_all:
        console.print("[yellow]Redo all - existing results will be re-fetched[/yellow]")
    elif config.enrichment.redo_marked:
        console.print("[yellow]Redo marked - matches without stats will be re-fetched[/yellow]")
    console.print()

    try:
        fetch = _build_fetcher(config)
        stats = asyncio.run(_enrich(config, data_dir, fetch))
    except ConfigurationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print()
    _show_summary(stats)

    if stats.persist_failures:
        raise typer.Exit(1)


def _show_summary(stats: RunStats) -> None:
    """Show summary table of enrichment results."""
    table = Table(title="Enrichment Summary")

    table.add_column("Unit", style="cyan")
    table.add_column("Attempted", justify="right")
    table.add_column("Found", justify="right", style="green")
    table.add_column("No stats", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")

    for unit_id, tally in stats.tallies.items():
        table.add_row(
            stats.unit_labels.get(unit_id, unit_id),
            str(tally.attempted),
            f"{tally.found} ({tally.found_percentage:.0f}%)",
            str(tally.not_found),
            str(tally.erroneous),
        )

    if len(stats.tallies) > 1:
        table.add_section()
        table.add_row(
            "[bold]Total[/bold]",
            str(stats.matches_attempted),
            str(stats.found),
            str(stats.not_found),
            str(stats.erroneous),
        )

    if stats.tallies:
        console.print(table)
    else:
        console.print("[dim]Nothing to enrich.[/dim]")

    duration = f"{stats.duration_seconds:.1f}s" if stats.duration_seconds else "-"
    console.print(
        f"Units persisted: {stats.units_persisted}/{stats.units_planned}  "
        f"Duration: {duration}"
    )
    if stats.checkpoint_restored:
        console.print("[yellow]A checkpoint from an interrupted run was restored first[/yellow]")

    diagnostics = stats.diagnostics
    if diagnostics.count:
        console.print(
            f"[dim]{len(diagnostics.empty_units)} target(s) with nothing to do, "
            f"{len(diagnostics.missing_season_data)} season(s) without data[/dim]"
        )

    if stats.errors:
        console.print()
        console.print("[red]Errors:[/red]")
        for error in stats.errors[:5]:
            console.print(f"  • {error}")
        if len(stats.errors) > 5:
            console.print(f"  [dim]... and {len(stats.errors) - 5} more[/dim]")


def plan_command(
    data_dir: Optional[Path] = typer.Argument(
        None,
        help="Directory scanned for target files (default: data_dir from config)",
    ),
    redo_all: bool = typer.Option(False, "--redo-all", help="Plan every match"),
    redo_marked: bool = typer.Option(
        False,
        "--redo-marked",
        help="Include matches previously marked as having no stats",
    ),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Show the units a run would process, without fetching anything."""
    config = load_config_or_exit(config_path)
    configure_logging(config, err_console)
    data_dir = data_dir or config.data_dir

    if not data_dir.is_dir():
        err_console.print(f"[red]Data directory not found:[/red] {data_dir}")
        raise typer.Exit(1)

    provider = JsonTargetProvider(config.enrichment.source_files)
    planner = UnitPlanner(
        redo_all=redo_all or config.enrichment.redo_all,
        redo_marked=redo_marked or config.enrichment.redo_marked,
    )
    try:
        plan = planner.plan(provider.scan(data_dir))
    except ConfigurationError as e:
        err_console.print(f"[red]Planning failed:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Enrichment Plan", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Target", style="cyan")
    table.add_column("Matches", justify="right")
    table.add_column("Save path", style="dim")

    for unit in plan.units.values():
        table.add_row(
            str(unit.counter),
            unit.identifier,
            str(unit.total),
            str(unit.target.save_path),
        )

    if plan.units:
        console.print(table)
    else:
        console.print("[dim]No eligible matches found.[/dim]")

    console.print(f"[bold]{plan.total_matches}[/bold] matches in [bold]{plan.total_units}[/bold] units")

    for diagnostic in plan.diagnostics.empty_units:
        console.print(f"  [dim]• {diagnostic.target}: nothing to enrich[/dim]")
    for diagnostic in plan.diagnostics.missing_season_data:
        console.print(f"  [yellow]• {diagnostic.target}: {diagnostic.detail}[/yellow]")
