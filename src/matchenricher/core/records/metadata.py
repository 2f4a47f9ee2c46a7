"""
Metadata normalization for legacy target files.

Legacy files carry ``tournament`` at the top level and no ``metadata``
block. Each top-level directory of a data root may hold a
``metadata.txt`` with ``key=value`` lines (tournament, country, date)
describing every file beneath it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from .scanner import DEFAULT_SOURCE_FILES
from .storage import read_json, write_json


logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.txt"


def read_metadata_file(directory: Path) -> dict[str, str]:
    """Parse ``metadata.txt`` in ``directory``.

    Returns:
        Mapping with any of ``tournament``, ``country``, ``scrapeDate``
    """
    metadata: dict[str, str] = {}
    path = directory / METADATA_FILE
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Error occurred when reading metadata: {e}")
        return metadata

    for line in contents.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip().lower()
        if key == "tournament":
            metadata["tournament"] = value.strip()
        elif key == "country":
            metadata["country"] = value.strip()
        elif key == "date":
            metadata["scrapeDate"] = value.strip()
    return metadata


def rewrite_metadata(
    root: Path | str,
    needed_files: Sequence[str] | None = None,
) -> list[Path]:
    """Rewrite legacy files under ``root`` to the standard metadata layout.

    Files that already have a ``metadata`` block are left alone.

    Args:
        root: Data root whose subdirectories each carry a metadata.txt
        needed_files: File names to rewrite (default: composed/repaired.json)

    Returns:
        Paths of the files that were rewritten
    """
    names = tuple(needed_files or DEFAULT_SOURCE_FILES)
    rewritten: list[Path] = []

    for directory in sorted(Path(root).iterdir()):
        if not directory.is_dir():
            continue
        metadata = read_metadata_file(directory)

        for path in sorted(directory.rglob("*")):
            if not path.is_file() or path.name not in names:
                continue
            try:
                parsed = read_json(path)
                if not isinstance(parsed, dict) or "metadata" in parsed:
                    continue

                standard = {
                    "metadata": {
                        "scrapeDate": metadata.get("scrapeDate")
                        or datetime.now(timezone.utc).isoformat(),
                        "country": metadata.get("country"),
                        "tournament": parsed.get("tournament"),
                    },
                    "data": parsed.get("data"),
                }
                write_json(path, standard)
                rewritten.append(path)
                logger.info(
                    f"Country: {metadata.get('country')}, tournament: {parsed.get('tournament')}"
                )
            except (OSError, ValueError) as e:
                logger.error(f"File error occurred in {path}: {e}")

    return rewritten
