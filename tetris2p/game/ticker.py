"""
Pausable periodic timer driving piece descent.

The ticker waits an initial delay once, then a fixed interval repeatedly,
and calls its callback after each wait. Pausing blocks the thread on a
condition variable; resuming always starts a full fresh wait, so missed
ticks are never replayed.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class Ticker:
    """Background thread that fires a callback at a fixed cadence.

    The callback runs outside the ticker's own lock. Synchronization with
    other mutators of the driven object is the callback's responsibility.

    Attributes:
        interval: Seconds between regular firings.
        initial_delay: Seconds before the first firing.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval: float,
        initial_delay: float | None = None,
        paused: bool = False,
    ) -> None:
        """Create a ticker (not started).

        Args:
            callback: Zero-argument callable invoked on every firing.
            interval: Seconds between firings.
            initial_delay: Seconds before the first firing (defaults to interval).
            paused: Whether the ticker starts in the paused state.
        """
        self.interval = interval
        self.initial_delay = interval if initial_delay is None else initial_delay
        self._callback = callback
        self._cond = threading.Condition()
        self._paused = paused
        self._stopped = False
        self._epoch = 0
        self._thread = threading.Thread(target=self._run, name="ticker", daemon=True)

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        self._thread.start()

    def pause(self) -> None:
        with self._cond:
            self._paused = True
            self._epoch += 1
            self._cond.notify_all()

    def resume(self) -> None:
        with self._cond:
            self._paused = False
            self._cond.notify_all()

    def stop(self) -> None:
        """Stop firing. Safe to call from inside the callback."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _wait_for(self, delay: float) -> bool:
        """Wait `delay` seconds unless paused or stopped meanwhile.

        Must be called with the condition held. A pause counts even when
        resume() follows before this thread wakes up.

        Returns:
            True if the full delay elapsed while running.
        """
        deadline = time.monotonic() + delay
        epoch = self._epoch
        while not self._stopped and not self._paused and self._epoch == epoch:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            self._cond.wait(remaining)
        return False

    def _run(self) -> None:
        delay = self.initial_delay
        while True:
            with self._cond:
                while self._paused and not self._stopped:
                    self._cond.wait()
                if self._stopped:
                    return
                if not self._wait_for(delay):
                    # Interrupted by pause or stop: start over with a full wait.
                    continue
            self._callback()
            delay = self.interval
