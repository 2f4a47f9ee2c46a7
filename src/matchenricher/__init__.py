"""
MatchEnricher - Crash-safe match statistics enrichment.

A CLI tool that walks scraped tournament datasets, fetches per-match
statistics one match at a time, checkpoints interrupted work, and
streams live progress to any number of observers.
"""

__version__ = "0.1.0"
__app_name__ = "matchenricher"
