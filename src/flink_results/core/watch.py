"""Following a statement's results through the results-manager message protocol.

The watcher behaves like a UI panel: it waits for the manager's notify
callback, asks for the current count, pages through the rows it has not
seen yet and stops once the stream is completed.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from flink_results.core.messages import MessageType
from flink_results.core.models import StreamState

if TYPE_CHECKING:
    from collections.abc import Callable

    from flink_results.core.manager import ResultsManager
    from flink_results.core.models import NormalizedRow, StatementMetadata
    from flink_results.core.session import ResultsSession


@dataclass
class WatchSummary:
    statement: str
    rows_printed: int
    total_rows: int
    status: str
    elapsed_seconds: float
    error: str | None = None
    halt_reason: str | None = None


class ResultsWatcher:
    """Prints newly buffered rows of one statement until its stream completes.

    ``emit`` receives each batch of unseen rows together with the column
    names to render them with.
    """

    def __init__(
        self,
        session: ResultsSession,
        emit: Callable[[list[str], list[NormalizedRow]], None],
        *,
        page_size: int = 100,
        search: str | None = None,
        idle_timeout_s: float = 1.0,
    ) -> None:
        if page_size < 1:
            msg = f"page_size must be >= 1, got {page_size}"
            raise ValueError(msg)
        self.session = session
        self.emit = emit
        self.page_size = page_size
        self.search = search
        self.idle_timeout_s = idle_timeout_s
        self.printed = 0
        self._changed = threading.Event()

    def _notify(self) -> None:
        self._changed.set()

    def run(self, statement: StatementMetadata) -> WatchSummary:
        log = structlog.get_logger()
        started = time.monotonic()
        manager = self.session.open(statement, self._notify)
        if self.search:
            manager.handle_message(MessageType.SEARCH, {"search": self.search})

        while True:
            self._changed.wait(self.idle_timeout_s)
            self._changed.clear()
            # Read the state before draining so rows appended together with
            # the final halt are still printed.
            state = manager.handle_message(MessageType.GET_STREAM_STATE)
            self.drain(manager)
            if state == StreamState.COMPLETED:
                break

        count = manager.handle_message(MessageType.GET_RESULTS_COUNT)
        meta = manager.handle_message(MessageType.GET_STATEMENT_META)
        error = manager.handle_message(MessageType.GET_STREAM_ERROR)
        summary = WatchSummary(
            statement=statement.handle.name,
            rows_printed=self.printed,
            total_rows=count["total"],
            status=meta["status"],
            elapsed_seconds=time.monotonic() - started,
            error=error["message"] if error else None,
            halt_reason=manager.halt_reason,
        )
        log.debug(
            "watch finished",
            statement=summary.statement,
            rows=summary.rows_printed,
            reason=summary.halt_reason,
        )
        return summary

    def drain(self, manager: ResultsManager) -> int:
        """Emit every row not printed yet and return how many were emitted."""
        count = manager.handle_message(MessageType.GET_RESULTS_COUNT)
        available = count["filter"]
        columns = [col.name for col in manager.handle_message(MessageType.GET_SCHEMA)["columns"]]
        emitted = 0
        while self.printed < available:
            page, skip = divmod(self.printed, self.page_size)
            rows = manager.handle_message(
                MessageType.GET_RESULTS, {"page": page, "pageSize": self.page_size}
            )["results"][skip:]
            if not rows:
                break
            self.emit(columns or list(rows[0].values), rows)
            self.printed += len(rows)
            emitted += len(rows)
        return emitted
