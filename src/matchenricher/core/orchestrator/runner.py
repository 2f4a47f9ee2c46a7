"""
Enrichment runner orchestrator.

Coordinates the full enrichment workflow:
checkpoint reconciliation → planning → fetch per match → persist per unit.

Work runs on a single lane: units in discovery order, matches in their
original order, a mandatory pause after every attempt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, TYPE_CHECKING

from matchenricher.core.checkpoint import CheckpointStore, ShutdownGuard
from matchenricher.core.errors import ConfigurationError
from matchenricher.core.fetch import (
    FetchFn,
    Pacer,
    PacingConfig,
    RetryExecutor,
)
from matchenricher.core.logging import ContextualLogger, get_contextual_logger
from matchenricher.core.progress import ProgressBroadcaster, ProgressSnapshot, UnitTally
from matchenricher.core.records import (
    JsonTargetProvider,
    Match,
    MatchResult,
    PersistenceError,
    Target,
    TargetProvider,
    persist_target,
)
from matchenricher.core.records.models import Found, NotFound, NotFoundTransient, result_from_json
from matchenricher.core.records.storage import dump_json

from .planner import PlanDiagnostics, PlanResult, Unit, UnitPlanner

if TYPE_CHECKING:
    from matchenricher.core.config import AppConfig


logger = logging.getLogger(__name__)

PersistFn = Callable[[str, Target], None]


class RunState(str, Enum):
    """Lifecycle of a run."""

    IDLE = "idle"
    PLANNING = "planning"
    ENRICHING = "enriching"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunStats:
    """Statistics for an enrichment run."""

    units_planned: int = 0
    matches_total: int = 0
    matches_attempted: int = 0
    units_persisted: int = 0
    persist_failures: int = 0
    checkpoint_restored: bool = False

    tallies: dict[str, UnitTally] = field(default_factory=dict)
    unit_labels: dict[str, str] = field(default_factory=dict)
    diagnostics: PlanDiagnostics = field(default_factory=PlanDiagnostics)

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    errors: list[str] = field(default_factory=list)

    @property
    def found(self) -> int:
        return sum(t.found for t in self.tallies.values())

    @property
    def not_found(self) -> int:
        return sum(t.not_found for t in self.tallies.values())

    @property
    def erroneous(self) -> int:
        return sum(t.erroneous for t in self.tallies.values())

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "units_planned": self.units_planned,
            "matches_total": self.matches_total,
            "matches_attempted": self.matches_attempted,
            "found": self.found,
            "not_found": self.not_found,
            "erroneous": self.erroneous,
            "units_persisted": self.units_persisted,
            "persist_failures": self.persist_failures,
            "checkpoint_restored": self.checkpoint_restored,
            "empty_units": len(self.diagnostics.empty_units),
            "missing_season_data": len(self.diagnostics.missing_season_data),
            "duration_seconds": self.duration_seconds,
        }


class EnrichmentRunner:
    """Orchestrates the complete enrichment workflow.

    Coordinates:
    - Checkpoint reconciliation before planning
    - Unit planning and diagnostics
    - Per-match fetching through the retry executor
    - Tallies and progress publishing
    - Per-unit persistence
    - Shutdown guard lifecycle
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        provider: TargetProvider | None = None,
        persist: PersistFn = persist_target,
        checkpoint_store: CheckpointStore | None = None,
        guard: ShutdownGuard | None = None,
        broadcaster: ProgressBroadcaster | None = None,
        retry_executor: RetryExecutor | None = None,
        pacer: Pacer | None = None,
        planner: UnitPlanner | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            fetch: Async fetch function for one match
            provider: Source of targets (default: JSON files on disk)
            persist: Writes a target to its save path
            checkpoint_store: Interrupted-run snapshot store
            guard: Shutdown guard (default: bound to checkpoint_store)
            broadcaster: Progress fan-out
            retry_executor: Retry policy around each fetch
            pacer: Inter-match delay
            planner: Unit planner (carries redo options)
        """
        self.fetch = fetch
        self.provider = provider or JsonTargetProvider()
        self.persist = persist
        self.checkpoint_store = checkpoint_store or CheckpointStore()
        self.guard = guard or ShutdownGuard(self.checkpoint_store)
        self.broadcaster = broadcaster or ProgressBroadcaster()
        self.retry_executor = retry_executor or RetryExecutor()
        self.pacer = pacer or Pacer()
        self.planner = planner or UnitPlanner()

        self.state = RunState.IDLE
        self.plan: PlanResult | None = None

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        fetch: FetchFn,
        *,
        broadcaster: ProgressBroadcaster | None = None,
    ) -> EnrichmentRunner:
        """Build a runner from application configuration."""
        enrichment = config.enrichment
        retry = config.retry
        store = CheckpointStore(config.checkpoint.path)

        return cls(
            fetch,
            provider=JsonTargetProvider(enrichment.source_files),
            checkpoint_store=store,
            guard=ShutdownGuard(store, install_signals=config.checkpoint.handle_signals),
            broadcaster=broadcaster,
            retry_executor=RetryExecutor(
                max_retries=retry.max_retries,
                max_wait_for_reconnect_ms=retry.max_wait_for_reconnect_ms,
                probe_url=retry.probe_url,
                probe_interval=retry.probe_interval_seconds,
                probe_timeout=retry.probe_timeout_seconds,
            ),
            pacer=Pacer(PacingConfig(
                min_delay_ms=enrichment.min_delay_ms,
                max_delay_ms=enrichment.max_delay_ms,
                fixed_delay_ms=enrichment.delay_ms,
            )),
            planner=UnitPlanner(
                redo_all=enrichment.redo_all,
                redo_marked=enrichment.redo_marked,
            ),
        )

    async def run(self, root_dir: Path | str) -> RunStats:
        """Execute a complete enrichment run.

        Args:
            root_dir: Directory scanned for targets

        Returns:
            RunStats with execution statistics

        Raises:
            ConfigurationError: Missing input or unplannable targets;
                raised before any fetch is issued
        """
        stats = RunStats()
        root = Path(root_dir)

        if not root.is_dir():
            self.state = RunState.FAILED
            raise ConfigurationError(f"Data directory not found: {root}")

        self.state = RunState.PLANNING
        try:
            self.plan = self._prepare(root, stats)
        except Exception as e:
            self.state = RunState.FAILED
            stats.errors.append(str(e))
            logger.error(f"Planning failed: {e}")
            raise

        try:
            await self._execute_plan(self.plan, stats)
        except BaseException:
            # Unexpected fault or cancellation: keep the in-flight target
            self.guard.fire()
            self.state = RunState.FAILED
            raise
        finally:
            self.guard.disarm()
            stats.finished_at = datetime.now(timezone.utc)

        self.state = RunState.COMPLETED
        logger.info(
            f"Enrichment finished: {stats.matches_attempted}/{stats.matches_total} matches, "
            f"{stats.found} found, {stats.not_found} without stats, {stats.erroneous} failed"
        )
        return stats

    def _prepare(self, root: Path, stats: RunStats) -> PlanResult:
        """Reconcile any checkpoint, then plan units."""
        targets = self.provider.scan(root)

        restored = self.checkpoint_store.reconcile(self.persist)
        if restored is not None:
            stats.checkpoint_restored = True
            targets = self.provider.scan(root)

        plan = self.planner.plan(targets)

        stats.units_planned = plan.total_units
        stats.matches_total = plan.total_matches
        stats.diagnostics = plan.diagnostics
        return plan

    async def _execute_plan(self, plan: PlanResult, stats: RunStats) -> None:
        """Process every unit in order, then publish the final snapshot."""
        total = plan.total_matches
        completed = 0
        snapshot: ProgressSnapshot | None = None

        for unit in plan.units.values():
            self.guard.arm(unit.target)
            log = get_contextual_logger(
                "orchestrator", target=unit.identifier, unit_id=unit.unit_id
            )
            log.info(f"Enriching unit {unit.counter}/{plan.total_units} ({unit.total} matches)")

            self.state = RunState.ENRICHING
            tally = UnitTally()
            stats.unit_labels[unit.unit_id] = unit.identifier

            for index, match in enumerate(unit.matches, start=1):
                match.result = await self._attempt(match, log)

                completed += 1
                stats.matches_attempted = completed
                tally = tally.record(match.result)
                stats.tallies[unit.unit_id] = tally

                snapshot = self._snapshot(plan, unit, completed, total, index, tally)
                self.broadcaster.publish(snapshot)

                await self.pacer.wait()

            self.state = RunState.PERSISTING
            self._persist_unit(unit, stats, log)

        if snapshot is None:
            snapshot = ProgressSnapshot(completed=0, total=0, total_units=plan.total_units)
        self.broadcaster.publish(snapshot.as_completed())

    async def _attempt(self, match: Match, log: ContextualLogger) -> MatchResult | None:
        """Fetch one match; terminal failures become an absent result."""
        url = match.fetch_url or ""

        async def operation() -> Any:
            return await self.fetch(
                match.score,
                url,
                home_team=match.home_team,
                away_team=match.away_team,
            )

        try:
            value = await self.retry_executor.execute(operation)
        except Exception as e:
            log.warning(f"Failed to enrich: {url} -> {e}", extra={"url": url})
            return None

        return self._coerce_result(value, url, log)

    def _coerce_result(self, value: Any, url: str, log: ContextualLogger) -> MatchResult | None:
        """Accept tagged results, plus raw payloads and sentinel strings."""
        if isinstance(value, (Found, NotFound, NotFoundTransient)):
            return value
        try:
            return result_from_json(value)
        except ValueError:
            log.warning(f"Fetcher returned an unusable value for {url}: {value!r}")
            return None

    def _persist_unit(self, unit: Unit, stats: RunStats, log: ContextualLogger) -> None:
        """Save the unit's whole target with updated metadata."""
        target = unit.target
        target.metadata.enrichment_timestamp = datetime.now(timezone.utc).isoformat()
        target.metadata.enriched = True

        try:
            self.persist(target.save_path, target)
            stats.units_persisted += 1
        except (PersistenceError, OSError) as e:
            stats.persist_failures += 1
            stats.errors.append(f"Persist failed: {e}")
            log.error(f"Failed to save {target.save_path}: {e}")
            # Data is at risk: dump it so it can be recovered from the log
            log.error(dump_json(target.to_dict()).decode("utf-8"))

    @staticmethod
    def _snapshot(
        plan: PlanResult,
        unit: Unit,
        completed: int,
        total: int,
        unit_completed: int,
        tally: UnitTally,
    ) -> ProgressSnapshot:
        return ProgressSnapshot(
            completed=completed,
            total=total,
            current_unit_id=unit.unit_id,
            unit_identifier=unit.identifier,
            unit_counter=unit.counter,
            total_units=plan.total_units,
            unit_completed=unit_completed,
            unit_total=unit.total,
            tally=tally,
        )


async def run_enrichment(
    data_dir: Path | str,
    fetch: FetchFn,
    *,
    config: AppConfig | None = None,
    broadcaster: ProgressBroadcaster | None = None,
) -> RunStats:
    """Convenience function to enrich a data directory.

    Args:
        data_dir: Directory scanned for targets
        fetch: Async fetch function for one match
        config: Application configuration (default: built-in defaults)
        broadcaster: Progress fan-out to attach observers to

    Returns:
        RunStats with execution statistics
    """
    from matchenricher.core.config import AppConfig

    runner = EnrichmentRunner.from_config(config or AppConfig(), fetch, broadcaster=broadcaster)
    return await runner.run(data_dir)
