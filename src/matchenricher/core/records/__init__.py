"""Target records - models, scanning, and JSON persistence."""

from .models import (
    Found,
    Gameweek,
    Match,
    MatchResult,
    NotFound,
    NotFoundTransient,
    Season,
    Target,
    TargetMetadata,
    is_sentinel,
)
from .scanner import JsonTargetProvider, TargetProvider
from .storage import PersistenceError, persist_target
from .metadata import rewrite_metadata

__all__ = [
    # Models
    "Found",
    "Gameweek",
    "Match",
    "MatchResult",
    "NotFound",
    "NotFoundTransient",
    "Season",
    "Target",
    "TargetMetadata",
    "is_sentinel",
    # Scanning
    "JsonTargetProvider",
    "TargetProvider",
    # Persistence
    "PersistenceError",
    "persist_target",
    "rewrite_metadata",
]
