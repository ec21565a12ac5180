"""Statement status tracking.

Keeps the owning statement's metadata fresh and reports the one transition
that matters to the results manager: into a terminal lifecycle state.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import sentry_sdk
import structlog

from flink_results.core.exceptions import FlinkResultsError

if TYPE_CHECKING:
    from collections.abc import Callable

    from flink_results.core.loader import ResourceLoader
    from flink_results.core.models import (
        LifecycleState,
        StatementHandle,
        StatementMetadata,
    )


class StatementStatusTracker:
    """Refreshes one statement's metadata on demand.

    Transitions only move towards a terminal state: once terminal, later
    refreshes are skipped and ``on_terminal`` has fired exactly once.
    A statement that is already terminal when tracking starts never fires
    ``on_terminal``; there was no transition to observe.
    """

    def __init__(
        self,
        loader: ResourceLoader,
        statement: StatementMetadata,
        on_update: Callable[[StatementMetadata], None] | None = None,
        on_terminal: Callable[[LifecycleState], None] | None = None,
    ) -> None:
        self.loader = loader
        self.handle: StatementHandle = statement.handle
        self._statement = statement
        self._on_update = on_update
        self._on_terminal = on_terminal
        self._lock = threading.Lock()
        self.refresh_count = 0

    @property
    def statement(self) -> StatementMetadata:
        with self._lock:
            return self._statement

    @property
    def state(self) -> LifecycleState:
        return self.statement.lifecycle

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def refresh(self) -> LifecycleState:
        """Re-fetch the statement and return its (possibly new) lifecycle state.

        Loader failures are logged and leave the current state untouched;
        the next scheduled refresh tries again.
        """
        log = structlog.get_logger()
        previous = self.state
        if previous.is_terminal:
            return previous

        self.refresh_count += 1
        with sentry_sdk.start_span(op="statement.refresh", description=self.handle.name):
            try:
                refreshed = self.loader.refresh_statement(self.handle)
            except FlinkResultsError as e:
                log.warning(
                    "statement refresh failed",
                    statement=self.handle.name,
                    error=e.message,
                    retryable=e.retryable,
                )
                return previous

        if refreshed is None:
            log.warning("statement vanished during refresh", statement=self.handle.name)
            return previous

        current = refreshed.lifecycle
        with self._lock:
            # Another refresh may have landed the terminal state while this
            # one was waiting on the loader.
            previous = self._statement.lifecycle
            if previous.is_terminal:
                return previous
            self._statement = refreshed

        if current is not previous:
            log.info(
                "statement state changed",
                statement=self.handle.name,
                previous=previous.value,
                current=current.value,
                phase=refreshed.phase,
            )
        if self._on_update is not None:
            self._on_update(refreshed)
        if current.is_terminal and self._on_terminal is not None:
            self._on_terminal(current)
        return current
