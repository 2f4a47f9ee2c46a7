"""Orchestrator - unit planning and the enrichment runner."""

from .planner import (
    PlanDiagnostics,
    PlanningDiagnostic,
    PlanResult,
    Unit,
    UnitIdCollisionError,
    UnitPlanner,
    is_eligible,
)
from .runner import EnrichmentRunner, RunState, RunStats, run_enrichment

__all__ = [
    "EnrichmentRunner",
    "PlanDiagnostics",
    "PlanResult",
    "PlanningDiagnostic",
    "RunState",
    "RunStats",
    "Unit",
    "UnitIdCollisionError",
    "UnitPlanner",
    "is_eligible",
    "run_enrichment",
]
