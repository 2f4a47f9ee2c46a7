"""CLI command modules."""

from . import checkpoint, enrich, metadata

__all__ = [
    "checkpoint",
    "enrich",
    "metadata",
]
