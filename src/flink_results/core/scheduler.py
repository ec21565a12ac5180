"""Repeating timers for the results manager's poll and refresh loops."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import sentry_sdk
import structlog

if TYPE_CHECKING:
    from collections.abc import Callable


class RepeatingTimer:
    """Calls ``callback`` every ``interval_s`` seconds on a daemon thread.

    Like setInterval: the first call happens one interval after start(),
    and calls never overlap because each runs on the same thread. cancel()
    is idempotent and safe to call from inside the callback.
    """

    def __init__(self, name: str, interval_s: float, callback: Callable[[], None]) -> None:
        if interval_s < 0:
            msg = f"interval must be >= 0, got {interval_s}"
            raise ValueError(msg)
        self.name = name
        self.interval_s = interval_s
        self.callback = callback
        self.ticks = 0
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._cancelled.is_set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for an in-flight tick to finish. No-op from the timer's own thread."""
        if self._thread is threading.current_thread() or not self._thread.is_alive():
            return
        self._thread.join(timeout)

    def _run(self) -> None:
        log = structlog.get_logger()
        while not self._cancelled.wait(self.interval_s):
            self.ticks += 1
            try:
                self.callback()
            except Exception as e:
                # A failing tick must not kill the loop; the next tick retries.
                sentry_sdk.capture_exception(e)
                log.exception("timer callback failed", timer=self.name)
        log.debug("timer stopped", timer=self.name, ticks=self.ticks)
