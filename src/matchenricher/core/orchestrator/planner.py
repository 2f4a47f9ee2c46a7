"""
Unit planner.

Groups the eligible matches of each target into one immutable work
unit. Planning has no side effects: a unit ID collision aborts before
anything is fetched or written.
"""

from __future__ import annotations

import logging
import random
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from matchenricher.core.errors import ConfigurationError
from matchenricher.core.records.models import Match, Target, is_sentinel


logger = logging.getLogger(__name__)

MAX_ID_RETRIES = 6
_ID_UNSAFE = re.compile(r"[\s:/$\\]")

# (target, attempt) -> candidate unit ID; attempt 0 is the first try
UnitIdFactory = Callable[[Target, int], str]


class UnitIdCollisionError(ConfigurationError):
    """No unique unit ID could be generated."""

    def __init__(self, unit_id: str, attempts: int):
        super().__init__(f"Unit ID {unit_id!r} still collides after {attempts} attempts")
        self.unit_id = unit_id
        self.attempts = attempts


def normalize_unit_id(raw: str) -> str:
    """Replace whitespace and path characters with underscores."""
    return _ID_UNSAFE.sub("_", raw)


def timestamp_unit_id(target: Target, attempt: int) -> str:
    """Default ID: ``country-tournament-<ns timestamp>``.

    Retries add a random offset to the timestamp.
    """
    stamp = time.time_ns()
    if attempt:
        stamp += random.randint(1, 1_000_000) * attempt
    meta = target.metadata
    return normalize_unit_id(f"{meta.country}-{meta.tournament}-{stamp}")


def is_eligible(match: Match, *, redo_all: bool = False, redo_marked: bool = False) -> bool:
    """Decide whether ``match`` should be fetched in this run."""
    if not match.fetch_url:
        return False
    if match.result is None or redo_all:
        return True
    return redo_marked and is_sentinel(match.result)


@dataclass(frozen=True)
class Unit:
    """The eligible matches of one target, processed and saved together."""

    unit_id: str
    target: Target
    matches: tuple[Match, ...]
    counter: int

    @property
    def total(self) -> int:
        return len(self.matches)

    @property
    def identifier(self) -> str:
        return self.target.identifier


@dataclass(frozen=True)
class PlanningDiagnostic:
    """Non-fatal planning observation."""

    kind: str  # "empty_unit" or "missing_season_data"
    target: str
    detail: str = ""


@dataclass
class PlanDiagnostics:
    """Diagnostics collected while planning."""

    empty_units: list[PlanningDiagnostic] = field(default_factory=list)
    missing_season_data: list[PlanningDiagnostic] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.empty_units) + len(self.missing_season_data)


@dataclass
class PlanResult:
    """Units in discovery order, plus diagnostics."""

    units: dict[str, Unit]
    diagnostics: PlanDiagnostics

    @property
    def total_matches(self) -> int:
        return sum(unit.total for unit in self.units.values())

    @property
    def total_units(self) -> int:
        return len(self.units)


class UnitPlanner:
    """Builds work units from targets.

    Usage:
        plan = UnitPlanner(redo_marked=True).plan(targets)
        for unit_id, unit in plan.units.items():
            ...
    """

    def __init__(
        self,
        *,
        redo_all: bool = False,
        redo_marked: bool = False,
        id_factory: UnitIdFactory = timestamp_unit_id,
        max_id_retries: int = MAX_ID_RETRIES,
    ):
        self.redo_all = redo_all
        self.redo_marked = redo_marked
        self.id_factory = id_factory
        self.max_id_retries = max_id_retries

    def plan(self, targets: Sequence[Target]) -> PlanResult:
        """Plan units for ``targets``.

        Raises:
            UnitIdCollisionError: If a unique unit ID cannot be generated
        """
        units: dict[str, Unit] = {}
        diagnostics = PlanDiagnostics()

        for target in targets:
            eligible: list[Match] = []

            for season in target.data:
                if not season.has_data:
                    diagnostics.missing_season_data.append(PlanningDiagnostic(
                        kind="missing_season_data",
                        target=target.identifier,
                        detail=season.label,
                    ))
                    logger.warning(f"No data for season {season.label!r} of {target.identifier}")
                    continue

                for gameweek in season.gameweeks:
                    for match in gameweek.matches:
                        if is_eligible(match, redo_all=self.redo_all, redo_marked=self.redo_marked):
                            eligible.append(match)

            if not eligible:
                diagnostics.empty_units.append(PlanningDiagnostic(
                    kind="empty_unit",
                    target=target.identifier,
                    detail=target.save_path,
                ))
                logger.info(f"Nothing to enrich for {target.identifier}")
                continue

            unit_id = self._unique_id(target, units)
            units[unit_id] = Unit(
                unit_id=unit_id,
                target=target,
                matches=tuple(eligible),
                counter=len(units) + 1,
            )

        plan = PlanResult(units=units, diagnostics=diagnostics)
        logger.info(f"Total matches to enrich: {plan.total_matches}")
        logger.info(f"A total of {plan.total_units} units to enrich")
        return plan

    def _unique_id(self, target: Target, planned: dict[str, Unit]) -> str:
        unit_id = ""
        for attempt in range(self.max_id_retries + 1):
            unit_id = self.id_factory(target, attempt)
            if unit_id not in planned:
                return unit_id
            logger.debug(f"Unit ID collision on {unit_id!r} (attempt {attempt + 1})")
        raise UnitIdCollisionError(unit_id, self.max_id_retries + 1)
