"""
Shutdown guard: a single slot holding the in-flight target.

Before a target is enriched the runner arms the guard with it. Arming
again swaps the slot; handlers are never stacked. On SIGINT/SIGTERM the
guard checkpoints the armed target synchronously and exits the process.
The slot is emptied when fired, so repeated signals never write twice.
"""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType
from typing import Any, Sequence

from matchenricher.core.records.models import Target

from .store import CheckpointStore


logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownGuard:
    """Checkpoints the armed target when the process is told to stop."""

    def __init__(
        self,
        store: CheckpointStore,
        *,
        install_signals: bool = True,
        signals: Sequence[signal.Signals] = DEFAULT_SIGNALS,
    ):
        """Initialize the guard.

        Args:
            store: Where the checkpoint is written
            install_signals: Install OS signal handlers on first arm
            signals: Signals that trigger a checkpoint
        """
        self.store = store
        self.install_signals = install_signals
        self.signals = tuple(signals)
        self._target: Target | None = None
        self._previous_handlers: dict[signal.Signals, Any] = {}

    @property
    def armed_target(self) -> Target | None:
        return self._target

    @property
    def handlers_installed(self) -> bool:
        return bool(self._previous_handlers)

    def arm(self, target: Target) -> None:
        """Bind the guard to ``target``, replacing any previous binding."""
        if self._target is not None and self._target is not target:
            logger.debug(f"Shutdown guard swapped to {target.identifier}")
        self._target = target
        self._install()

    def disarm(self) -> None:
        """Clear the slot and restore the previous signal handlers."""
        self._target = None
        self._restore()

    def fire(self) -> bool:
        """Checkpoint the armed target, at most once per arming.

        Returns:
            True if a checkpoint was written
        """
        target, self._target = self._target, None
        if target is None:
            return False
        logger.warning(f"Interrupted while enriching {target.identifier}, saving checkpoint")
        return self.store.save(target)

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.warning(f"Received {signal.Signals(signum).name}")
        self.fire()
        raise SystemExit(128 + signum)

    def _install(self) -> None:
        if not self.install_signals or self._previous_handlers:
            return
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return
        for sig in self.signals:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)

    def _restore(self) -> None:
        for sig, previous in self._previous_handlers.items():
            signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
        self._previous_handlers.clear()

    def __enter__(self) -> ShutdownGuard:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.disarm()
