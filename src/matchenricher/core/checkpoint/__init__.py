"""Crash checkpointing - store and shutdown guard."""

from .store import DEFAULT_CHECKPOINT_PATH, CheckpointConflict, CheckpointStore
from .shutdown import ShutdownGuard

__all__ = [
    "DEFAULT_CHECKPOINT_PATH",
    "CheckpointConflict",
    "CheckpointStore",
    "ShutdownGuard",
]
