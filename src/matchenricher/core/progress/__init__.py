"""Progress tracking - snapshots and observer fan-out."""

from .broadcaster import Observer, ProgressBroadcaster, SnapshotQueue
from .snapshot import ProgressSnapshot, UnitTally, percent_of

__all__ = [
    "Observer",
    "ProgressBroadcaster",
    "ProgressSnapshot",
    "SnapshotQueue",
    "UnitTally",
    "percent_of",
]
