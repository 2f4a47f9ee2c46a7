"""
Progress value objects.

Snapshots and tallies are immutable; every update produces a new value
that replaces the previous one wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from matchenricher.core.records.models import Found, MatchResult, is_sentinel


def percent_of(part: int, whole: int) -> float:
    """Percentage rounded to two decimals; 0.0 when ``whole`` is 0."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


@dataclass(frozen=True)
class UnitTally:
    """Outcome counts for the matches attempted in one unit."""

    attempted: int = 0
    found: int = 0
    not_found: int = 0
    erroneous: int = 0

    def record(self, result: MatchResult | None) -> UnitTally:
        """Return a new tally with one more attempted match."""
        if isinstance(result, Found):
            return replace(self, attempted=self.attempted + 1, found=self.found + 1)
        if is_sentinel(result):
            return replace(self, attempted=self.attempted + 1, not_found=self.not_found + 1)
        return replace(self, attempted=self.attempted + 1, erroneous=self.erroneous + 1)

    @property
    def found_percentage(self) -> float:
        return percent_of(self.found, self.attempted)

    @property
    def not_found_percentage(self) -> float:
        return percent_of(self.not_found, self.attempted)

    @property
    def erroneous_percentage(self) -> float:
        return percent_of(self.erroneous, self.attempted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "notFound": self.not_found,
            "erroneous": self.erroneous,
            "foundPercentage": self.found_percentage,
            "notFoundPercentage": self.not_found_percentage,
            "erroneousPercentage": self.erroneous_percentage,
        }


@dataclass(frozen=True)
class ProgressSnapshot:
    """Latest summary of run progress."""

    completed: int
    total: int
    current_unit_id: str | None = None
    unit_identifier: str | None = None
    unit_counter: int = 0
    total_units: int = 0
    unit_completed: int = 0
    unit_total: int = 0
    tally: UnitTally = field(default_factory=UnitTally)
    is_completed: bool = False

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0 if self.is_completed else 0.0
        return percent_of(self.completed, self.total)

    @property
    def unit_percentage(self) -> float:
        return percent_of(self.unit_completed, self.unit_total)

    @property
    def unit_progression(self) -> str:
        return f"{self.unit_completed}/{self.unit_total}"

    def as_completed(self) -> ProgressSnapshot:
        """Copy of this snapshot flagged as final."""
        return replace(self, is_completed=True)

    def to_event(self) -> dict[str, Any]:
        """Wire form streamed to observers."""
        return {
            "completed": self.completed,
            "total": self.total,
            "percent": self.percent,
            "currentUnitId": self.current_unit_id,
            "currentProcessedUnitCounter": self.unit_counter,
            "totalUnits": self.total_units,
            "isCompleted": self.is_completed,
            "currentUnit": {
                "unitIdentifier": self.unit_identifier,
                "percentage": self.unit_percentage,
                "progression": self.unit_progression,
            },
            "tally": self.tally.to_dict(),
        }
