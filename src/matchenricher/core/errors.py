"""
Exception hierarchy shared across the enrichment engine.

Component-specific errors (fetch, retry, checkpoint, persistence) live
next to the component that raises them and derive from these bases.
"""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base exception for all enrichment errors."""


class ConfigurationError(EnrichmentError):
    """Fatal configuration or input error.

    Raised before any fetch is issued; aborts the run.
    """
