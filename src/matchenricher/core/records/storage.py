"""
JSON persistence for targets.

Writes are whole-file overwrites through a temporary sibling file so a
crash mid-write never leaves a truncated target behind.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import orjson

from matchenricher.core.errors import EnrichmentError

from .models import Target


logger = logging.getLogger(__name__)


class PersistenceError(EnrichmentError):
    """Target could not be written to its save path."""

    def __init__(self, message: str, path: Path | str | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


def dump_json(data: Any) -> bytes:
    """Serialize to indented JSON bytes."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2)


def read_json(path: Path | str) -> Any:
    """Read and parse a JSON file."""
    return orjson.loads(Path(path).read_bytes())


def write_json(path: Path | str, data: Any) -> None:
    """Atomically overwrite ``path`` with ``data`` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_bytes(dump_json(data))
    os.replace(tmp_path, path)


def persist_target(path: Path | str, target: Target) -> None:
    """Overwrite the serialized form of ``target`` at ``path``.

    Raises:
        PersistenceError: If the file cannot be written
    """
    try:
        write_json(path, target.to_dict())
    except (OSError, TypeError, orjson.JSONEncodeError) as e:
        raise PersistenceError(f"Failed to save {path}: {e}", path=path, cause=e) from e
    logger.info(f"Saved enriched file: {path}")
