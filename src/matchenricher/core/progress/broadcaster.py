"""
Progress fan-out to any number of observers.

The broadcaster keeps the latest snapshot. Observers that subscribe
after the run completed are handed the final snapshot immediately;
mid-run subscribers only see snapshots published after they joined.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from typing import AsyncIterator, Callable

from .snapshot import ProgressSnapshot


logger = logging.getLogger(__name__)

Observer = Callable[[ProgressSnapshot], None]


class ProgressBroadcaster:
    """Holds the latest snapshot and delivers each publish to all observers.

    Observers are plain callables and must not block. One that raises is
    dropped; the others still receive the snapshot.
    """

    def __init__(self) -> None:
        self._observers: dict[int, Observer] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()
        self._latest: ProgressSnapshot | None = None

    @property
    def latest(self) -> ProgressSnapshot | None:
        return self._latest

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer``.

        Returns:
            Callable that unsubscribes the observer (idempotent)
        """
        with self._lock:
            token = next(self._tokens)
            self._observers[token] = observer
            latest = self._latest

        if latest is not None and latest.is_completed:
            self._deliver(token, observer, latest)

        def unsubscribe() -> None:
            with self._lock:
                self._observers.pop(token, None)

        return unsubscribe

    def publish(self, snapshot: ProgressSnapshot) -> None:
        """Replace the latest snapshot and deliver it to every observer."""
        with self._lock:
            self._latest = snapshot
            observers = list(self._observers.items())

        for token, observer in observers:
            self._deliver(token, observer, snapshot)

    def _deliver(self, token: int, observer: Observer, snapshot: ProgressSnapshot) -> None:
        try:
            observer(snapshot)
        except Exception as e:
            logger.warning(f"Dropping progress observer after delivery failure: {e}")
            with self._lock:
                self._observers.pop(token, None)


class SnapshotQueue:
    """Observer that buffers snapshots for one async consumer.

    The buffer is bounded: when full, the oldest pending snapshot is
    discarded so the publisher never waits. Iteration ends after the
    completed snapshot has been yielded.

    Usage:
        queue = SnapshotQueue()
        unsubscribe = broadcaster.subscribe(queue)
        async for snapshot in queue:
            ...
    """

    def __init__(self, maxsize: int = 64):
        self._queue: asyncio.Queue[ProgressSnapshot] = asyncio.Queue(maxsize=maxsize)
        self._last: ProgressSnapshot | None = None
        self.dropped = 0

    def __call__(self, snapshot: ProgressSnapshot) -> None:
        if snapshot is self._last:
            return
        self._last = snapshot
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(snapshot)

    async def get(self) -> ProgressSnapshot:
        return await self._queue.get()

    def __aiter__(self) -> AsyncIterator[ProgressSnapshot]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ProgressSnapshot]:
        while True:
            snapshot = await self._queue.get()
            yield snapshot
            if snapshot.is_completed:
                return
