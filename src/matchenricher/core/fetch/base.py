"""
Fetch contract and error types.

A fetch function takes the match score, its stats URL, and the team
names, and returns a MatchResult, or None to leave the match absent.
Transport failures are raised, never returned.
"""

from __future__ import annotations

from typing import Awaitable, Protocol

from matchenricher.core.errors import EnrichmentError
from matchenricher.core.records.models import MatchResult


class FetchFn(Protocol):
    """Signature of a match stats fetcher."""

    def __call__(
        self,
        score: str,
        url: str,
        *,
        home_team: str,
        away_team: str,
    ) -> Awaitable[MatchResult | None]:
        ...


class FetchError(EnrichmentError):
    """Error during a fetch operation."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class NetworkError(FetchError):
    """Fetch failed because the network is unreachable.

    Fetchers not built on httpx raise this to opt into
    backoff and reconnect polling.
    """
