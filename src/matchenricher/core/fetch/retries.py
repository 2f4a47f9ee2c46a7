"""
Retry executor with tenacity.

Wraps a single fetch call with bounded retries. Only network-class
failures are retried: after an exponential backoff the executor polls a
known-reachable endpoint until connectivity returns, then tries again.
Everything else propagates to the caller unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import time
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from matchenricher.core.errors import EnrichmentError

from .base import NetworkError


logger = logging.getLogger(__name__)

T = TypeVar("T")


# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_WAIT_FOR_RECONNECT_MS = 600_000
DEFAULT_BACKOFF_BASE = 2  # wait = base ** attempt seconds
DEFAULT_MAX_BACKOFF = 300  # seconds
DEFAULT_PROBE_URL = "https://www.google.com"
DEFAULT_PROBE_INTERVAL = 5.0  # seconds
DEFAULT_PROBE_TIMEOUT = 10.0  # seconds


class ReconnectTimeoutError(EnrichmentError):
    """Network did not come back within the reconnect budget."""

    def __init__(self, waited_ms: float, budget_ms: float):
        super().__init__(
            f"Network unreachable after waiting {waited_ms / 1000:.0f}s "
            f"(limit {budget_ms / 1000:.0f}s)"
        )
        self.waited_ms = waited_ms
        self.budget_ms = budget_ms


def is_network_error(exc: BaseException) -> bool:
    """Classify an exception as network-class (retryable).

    Connection refused, DNS failures, and timeouts qualify; malformed
    requests and content errors do not.
    """
    if isinstance(exc, httpx.UnsupportedProtocol):
        return False
    return isinstance(
        exc,
        (
            httpx.TransportError,
            NetworkError,
            ConnectionError,
            TimeoutError,
            asyncio.TimeoutError,
            socket.gaierror,
        ),
    )


async def probe_endpoint(url: str, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """Return True if ``url`` answers at all (any HTTP status)."""
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=False) as client:
            await client.head(url)
        return True
    except httpx.HTTPError:
        return False


class RetryExecutor:
    """Runs one operation with backoff and active reconnect polling.

    Usage:
        executor = RetryExecutor(max_retries=3)
        result = await executor.execute(lambda: fetch(score, url, ...))
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_wait_for_reconnect_ms: float = DEFAULT_MAX_WAIT_FOR_RECONNECT_MS,
        *,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        probe_url: str = DEFAULT_PROBE_URL,
        probe_interval: float = DEFAULT_PROBE_INTERVAL,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        probe: Callable[[], Awaitable[bool]] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the executor.

        Args:
            max_retries: Retries after the first attempt
            max_wait_for_reconnect_ms: Reconnect polling budget per retry
            backoff_base: Exponential base; the n-th retry waits base**n seconds
            max_backoff: Upper bound for a single backoff wait
            probe_url: Endpoint polled to detect connectivity
            probe_interval: Seconds between reconnect probes
            probe_timeout: Timeout of one probe request
            probe: Custom connectivity check (overrides probe_url)
            sleep: Awaitable sleep, injectable for tests
            clock: Monotonic clock in seconds, injectable for tests
        """
        self.max_retries = max_retries
        self.max_wait_for_reconnect_ms = max_wait_for_reconnect_ms
        self.backoff_base = backoff_base
        self.max_backoff = max_backoff
        self.probe_url = probe_url
        self.probe_interval = probe_interval
        self.probe_timeout = probe_timeout
        self._probe = probe or self._default_probe
        self._sleep = sleep
        self._clock = clock

    async def _default_probe(self) -> bool:
        return await probe_endpoint(self.probe_url, self.probe_timeout)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int | None = None,
        max_wait_for_reconnect_ms: float | None = None,
    ) -> T:
        """Execute ``operation`` with retry logic.

        Args:
            operation: Zero-argument coroutine function
            max_retries: Override retries for this call
            max_wait_for_reconnect_ms: Override reconnect budget for this call

        Returns:
            The operation's result

        Raises:
            ReconnectTimeoutError: If connectivity did not return in time
            Exception: The last error from ``operation`` when not retryable
                or retries are exhausted
        """
        retries = self.max_retries if max_retries is None else max_retries
        budget_ms = (
            self.max_wait_for_reconnect_ms
            if max_wait_for_reconnect_ms is None
            else max_wait_for_reconnect_ms
        )

        async def backoff_then_reconnect(seconds: float) -> None:
            await self._sleep(seconds)
            await self.wait_for_network(budget_ms)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(
                multiplier=self.backoff_base,
                exp_base=self.backoff_base,
                max=self.max_backoff,
            ),
            retry=retry_if_exception(is_network_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=backoff_then_reconnect,
            reraise=True,
        ):
            with attempt:
                return await operation()

        raise RuntimeError("unreachable: retry loop exited without result")

    async def wait_for_network(self, budget_ms: float | None = None) -> None:
        """Poll the probe until it succeeds or the budget elapses.

        Raises:
            ReconnectTimeoutError: If the budget elapses first
        """
        if budget_ms is None:
            budget_ms = self.max_wait_for_reconnect_ms

        started = self._clock()
        warned = False

        while not await self._probe():
            waited_ms = (self._clock() - started) * 1000
            if waited_ms >= budget_ms:
                logger.error(f"Network still unreachable after {waited_ms / 1000:.0f}s, giving up")
                raise ReconnectTimeoutError(waited_ms, budget_ms)
            if not warned:
                logger.warning(
                    f"Network unreachable, polling every {self.probe_interval:.0f}s "
                    f"for up to {budget_ms / 1000:.0f}s"
                )
                warned = True
            await self._sleep(self.probe_interval)

        if warned:
            logger.info("Network reachable again, retrying")
