"""
Inter-match pacing.

Every attempted match is followed by a mandatory delay, whether the
fetch succeeded or not, to bound the request rate against the remote
source.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable


@dataclass
class PacingConfig:
    """Configuration for inter-match pacing."""

    min_delay_ms: int = 1000
    max_delay_ms: int = 4000
    fixed_delay_ms: int | None = None  # Overrides jitter when set


class Pacer:
    """Jittered (or fixed) delay between consecutive fetches.

    Usage:
        pacer = Pacer(PacingConfig(fixed_delay_ms=500))
        await pacer.wait()
    """

    def __init__(
        self,
        config: PacingConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.config = config or PacingConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def next_delay(self) -> float:
        """Calculate the next delay in seconds."""
        if self.config.fixed_delay_ms is not None:
            return max(0, self.config.fixed_delay_ms) / 1000.0
        delay_ms = self._rng.randint(self.config.min_delay_ms, self.config.max_delay_ms)
        return delay_ms / 1000.0

    async def wait(self) -> float:
        """Sleep for the next delay.

        Returns:
            Seconds waited
        """
        delay = self.next_delay()
        if delay > 0:
            await self._sleep(delay)
        return delay
