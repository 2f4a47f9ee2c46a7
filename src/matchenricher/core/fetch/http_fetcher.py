"""
HTTP stats fetcher using httpx.

Default fetch function for sources that serve match stats as JSON.
Retries are not handled here: transport errors propagate so the
RetryExecutor can classify them, back off, and wait for the network.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

import httpx

from matchenricher.core.errors import ConfigurationError
from matchenricher.core.records.models import (
    Found,
    MatchResult,
    NotFound,
    NotFoundTransient,
)

from .base import FetchError, FetchFn


logger = logging.getLogger(__name__)


# Common user agents
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

# Status codes meaning the source has no stats for this match
NOT_FOUND_STATUS_CODES = {404, 410}

# Status codes meaning "nothing yet, ask again later"
TRANSIENT_STATUS_CODES = {204}


class HttpStatsFetcher:
    """Fetches match stats from a JSON endpoint.

    Response mapping:
    - 200 with a JSON object body -> Found(payload)
    - 404 / 410 -> NotFound
    - 204 or an empty body -> NotFoundTransient
    - any other error status -> FetchError (not retried)

    Usage:
        async with HttpStatsFetcher() as fetcher:
            result = await fetcher("2 : 0", url, home_team="A", away_team="B")
    """

    def __init__(
        self,
        timeout: float = 45.0,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP fetcher.

        Args:
            timeout: Request timeout in seconds
            user_agent: Custom user agent
            default_headers: Extra headers for all requests
            transport: Custom httpx transport (proxies, mocking)
        """
        self.timeout = timeout
        self.user_agent = user_agent or USER_AGENTS[0]
        self.default_headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json,text/html;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            **(default_headers or {}),
        }
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                transport=self.transport,
            )
        return self._client

    async def __call__(
        self,
        score: str,
        url: str,
        *,
        home_team: str,
        away_team: str,
    ) -> MatchResult | None:
        logger.info(f"[Stats] {home_team} vs {away_team}" if home_team else f"[Stats] {url}")

        client = await self._ensure_client()
        response = await client.get(url)

        if str(response.url) != url:
            logger.debug(f"Redirect detected: {response.url}")

        if response.status_code in NOT_FOUND_STATUS_CODES:
            return NotFound()
        if response.status_code >= 400:
            raise FetchError(
                f"HTTP error: Status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        if response.status_code in TRANSIENT_STATUS_CODES or not response.content.strip():
            return NotFoundTransient()

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(f"Response is not JSON: {e}", url=url, cause=e) from e

        if not isinstance(payload, dict):
            raise FetchError("Expected a JSON object", url=url)

        return self._verify_score(score, payload)

    def _verify_score(self, score: str, payload: dict[str, Any]) -> MatchResult | None:
        """Reject payloads whose score disagrees with the record.

        A rejected payload leaves the match absent, so the next run
        fetches it again.
        """
        reported = payload.get("score")
        if reported is not None and _normalize_score(str(reported)) != _normalize_score(score):
            logger.warning(f"Score verification failed: expected {score!r}, got {reported!r}")
            return None
        return Found(payload)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpStatsFetcher:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _normalize_score(score: str) -> str:
    """``"2 : 0 AWD"`` -> ``"20"``."""
    normalized = "".join(score.split()).replace(":", "")
    if normalized.endswith("AWD"):
        normalized = normalized[:-3]
    return normalized


def load_fetcher(import_path: str) -> FetchFn:
    """Load a fetch function from ``package.module:attribute``.

    If the attribute is a class, it is instantiated with no arguments.

    Raises:
        ConfigurationError: If the import path cannot be resolved
    """
    module_name, sep, attr = import_path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Fetcher must look like 'package.module:callable', got {import_path!r}")

    try:
        module = importlib.import_module(module_name)
        obj = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load fetcher {import_path!r}: {e}") from e

    if isinstance(obj, type):
        obj = obj()
    if not callable(obj):
        raise ConfigurationError(f"Fetcher {import_path!r} is not callable")
    return obj
