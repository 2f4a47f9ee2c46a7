"""
Checkpoint store for interrupted runs.

At most one checkpoint exists at a time. It holds the full state of the
target that was being enriched when the process was shut down. Saving
never overwrites an existing checkpoint: unresolved state needs an
operator to reconcile it first.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from matchenricher.core.errors import EnrichmentError
from matchenricher.core.records.models import Target
from matchenricher.core.records.storage import (
    persist_target,
    read_json,
    write_json,
)


logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_PATH = Path("data/checkpoint.json")


class CheckpointConflict(EnrichmentError):
    """A checkpoint already exists and would be overwritten."""

    def __init__(self, path: Path):
        super().__init__(f"Checkpoint already exists at {path}; refusing to overwrite")
        self.path = path


class CheckpointStore:
    """Persists the single interrupted-run snapshot.

    ``save`` is synchronous so it can run from a signal handler.
    """

    def __init__(self, path: Path | str = DEFAULT_CHECKPOINT_PATH):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def save(self, target: Target) -> bool:
        """Write ``target`` as the checkpoint unless one exists already.

        Returns:
            True if written, False if refused
        """
        if self.exists():
            conflict = CheckpointConflict(self._path)
            logger.error(f"{conflict}. Reconcile it manually before the next run.")
            return False

        payload = {
            "savePath": target.save_path,
            "checkpointedAt": datetime.now(timezone.utc).isoformat(),
            **target.to_dict(),
        }
        write_json(self._path, payload)
        logger.warning(f"Checkpoint saved for {target.identifier} at {self._path}")
        return True

    def load(self) -> Target | None:
        """Load the checkpointed target, or None if there is none."""
        if not self.exists():
            return None
        content = read_json(self._path)
        return Target.from_dict(content, save_path=content.get("savePath"))

    def clear(self) -> None:
        """Delete the checkpoint file."""
        if self.exists():
            self._path.unlink()
            logger.debug(f"Checkpoint removed: {self._path}")

    def reconcile(
        self,
        persist: Callable[[str, Target], None] = persist_target,
    ) -> Target | None:
        """Restore a checkpoint over its target's save path, then delete it.

        The checkpoint fully replaces whatever is at the save path.

        Returns:
            The restored target, or None if there was no checkpoint
        """
        target = self.load()
        if target is None:
            return None

        logger.info(f"Reconciling checkpoint for {target.identifier} -> {target.save_path}")
        persist(target.save_path, target)
        self.clear()
        return target
