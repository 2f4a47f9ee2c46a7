"""
Directory scanner producing enrichment targets.

Walks a data directory for ``composed.json`` / ``repaired.json`` files.
A directory holding one of these is a leaf: its subdirectories are not
visited. When ``<name>.enriched.json`` already sits next to a source
file, the enriched file is loaded instead so recorded results survive
restarts.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence

from .models import Target
from .storage import read_json


logger = logging.getLogger(__name__)

DEFAULT_SOURCE_FILES = ("composed.json", "repaired.json")
ENRICHED_SUFFIX = ".enriched.json"


class TargetProvider(Protocol):
    """Anything able to list targets under a root directory."""

    def scan(self, root_dir: Path | str) -> list[Target]:
        ...


def enriched_path_for(source: Path) -> Path:
    """``composed.json`` → ``composed.enriched.json`` in the same directory."""
    return source.with_name(f"{source.stem}{ENRICHED_SUFFIX}")


class JsonTargetProvider:
    """Default target provider reading JSON files from disk."""

    def __init__(self, source_files: Sequence[str] = DEFAULT_SOURCE_FILES):
        self.source_files = tuple(source_files)

    def scan(self, root_dir: Path | str) -> list[Target]:
        """Collect targets under ``root_dir`` in sorted walk order."""
        targets: list[Target] = []
        self._walk(Path(root_dir), targets)
        logger.debug(f"Scanned {root_dir}: {len(targets)} targets")
        return targets

    def _walk(self, directory: Path, targets: list[Target]) -> None:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
        sources = [e for e in entries if e.is_file() and e.name in self.source_files]

        if not sources:
            for entry in entries:
                if entry.is_dir():
                    self._walk(entry, targets)
            return

        for source in sources:
            target = self._load(source)
            if target is not None:
                targets.append(target)

    def _load(self, source: Path) -> Target | None:
        save_path = enriched_path_for(source)
        read_from = save_path if save_path.exists() else source

        try:
            content = read_json(read_from)
            if not isinstance(content, dict):
                raise ValueError("top-level JSON value is not an object")
            return Target.from_dict(content, save_path=str(save_path))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read or parse {read_from}: {e}")
            return None
