"""Results manager: incremental fetching and paged access to statement results.

Two repeating timers drive the manager. The poll timer pulls the next result
page, parses it and appends the rows to a bounded buffer. The refresh timer
keeps the statement's status fresh and halts everything once the statement
reaches a terminal state. The UI side only ever talks to ``handle_message``,
which answers from memory and never waits on the network.

Timers run on their own threads, so one lock guards the buffer, the cursor
and the filtered view. Network calls are always made outside that lock.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import sentry_sdk
import structlog

from flink_results.core.buffer import ResultsBuffer
from flink_results.core.exceptions import FlinkResultsError, MalformedResponseError
from flink_results.core.messages import (
    GetResultsBody,
    MessageType,
    SearchBody,
    SetVisibleColumnsBody,
    parse_message,
)
from flink_results.core.models import ABSENT, LifecycleState, StreamState
from flink_results.core.parser import RowParser
from flink_results.core.scheduler import RepeatingTimer
from flink_results.core.tracker import StatementStatusTracker

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from flink_results.core.fetcher import ResultPageFetcher
    from flink_results.core.loader import ResourceLoader
    from flink_results.core.messages import MessageBody
    from flink_results.core.models import NormalizedRow, StatementMetadata

STOP_FAILED_MESSAGE = "Failed to stop Flink statement"


class HaltReason:
    COMPLETED = "completed"
    TRUNCATED = "truncated"
    ERROR = "error"
    TERMINAL = "terminal"
    NOT_VIEWABLE = "not-viewable"
    DISPOSED = "disposed"


def _row_matches(row: NormalizedRow, needle: str, columns: Sequence[str] | None) -> bool:
    for name, value in row.values.items():
        if columns is not None and name not in columns:
            continue
        if value is None or value is ABSENT:
            continue
        if needle in str(value).lower():
            return True
    return False


class ResultsManager:
    """Fetches, buffers and serves the results of one statement.

    Args:
        statement: Metadata of the statement whose results are consumed.
        fetcher: Pulls result pages for the statement.
        loader: Refreshes and stops the statement.
        notify: Called after every change worth re-rendering.
        results_limit: Maximum number of buffered rows.
        polling_interval_ms: Period of the result-page poll loop.
        refresh_interval_ms: Period of the statement refresh loop.
        start: Start both timers immediately. Pass False to drive
            ``poll_once``/``refresh_once`` by hand.
    """

    def __init__(
        self,
        statement: StatementMetadata,
        fetcher: ResultPageFetcher,
        loader: ResourceLoader,
        notify: Callable[[], None],
        *,
        results_limit: int,
        polling_interval_ms: int,
        refresh_interval_ms: int,
        start: bool = True,
    ) -> None:
        self.handle = statement.handle
        self.fetcher = fetcher
        self.loader = loader
        self._notify = notify
        self.results_limit = results_limit
        self.polling_interval_ms = polling_interval_ms
        self.refresh_interval_ms = refresh_interval_ms

        self._lock = threading.Lock()
        self._poll_guard = threading.Lock()
        self._buffer = ResultsBuffer(results_limit)
        self._parser = RowParser(statement.columns)
        self._cursor: str | None = None
        self._halt_reason: str | None = None
        self._error: dict[str, str] | None = None
        self._search: str | None = None
        self._needle: str | None = None
        self._visible_columns: list[str] | None = None
        self._filtered: list[NormalizedRow] = []
        self._disposed = False
        self._stop_executor: ThreadPoolExecutor | None = None
        self.fetch_count = 0

        self.tracker = StatementStatusTracker(
            loader,
            statement,
            on_update=self._on_statement_update,
            on_terminal=self._on_terminal,
        )
        self._poll_timer = RepeatingTimer(
            f"results-poll-{self.handle.name}",
            polling_interval_ms / 1000,
            self.poll_once,
        )
        self._refresh_timer = RepeatingTimer(
            f"statement-refresh-{self.handle.name}",
            refresh_interval_ms / 1000,
            self.refresh_once,
        )
        if start:
            self.start()

    def __enter__(self) -> ResultsManager:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        self._poll_timer.start()
        # A statement that is already terminal has nothing left to refresh.
        if not self.tracker.is_terminal:
            self._refresh_timer.start()
        structlog.get_logger().debug(
            "results manager started",
            statement=self.handle.name,
            state=self.tracker.state.value,
            polling_interval_ms=self.polling_interval_ms,
            refresh_interval_ms=self.refresh_interval_ms,
        )

    def dispose(self) -> None:
        """Cancel both timers. Rows from a fetch still in flight are discarded."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            if self._halt_reason is None:
                self._halt_reason = HaltReason.DISPOSED
        self._poll_timer.cancel()
        self._refresh_timer.cancel()
        if self._stop_executor is not None:
            self._stop_executor.shutdown(wait=False)
        structlog.get_logger().debug("results manager disposed", statement=self.handle.name)

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def statement(self) -> StatementMetadata:
        return self.tracker.statement

    @property
    def stream_state(self) -> StreamState:
        with self._lock:
            return StreamState.RUNNING if self._halt_reason is None else StreamState.COMPLETED

    @property
    def halt_reason(self) -> str | None:
        return self._halt_reason

    def _halt_locked(self, reason: str) -> bool:
        if self._halt_reason is not None:
            return False
        self._halt_reason = reason
        self._poll_timer.cancel()
        structlog.get_logger().info(
            "results polling halted",
            statement=self.handle.name,
            reason=reason,
            rows=len(self._buffer),
        )
        return True

    # -- poll loop -------------------------------------------------------------

    def poll_once(self) -> int:
        """Run one poll tick and return the number of rows appended."""
        if not self._poll_guard.acquire(blocking=False):
            structlog.get_logger().warning(
                "poll tick still running, skipping", statement=self.handle.name
            )
            return 0
        try:
            return self._poll()
        finally:
            self._poll_guard.release()

    def _poll(self) -> int:
        log = structlog.get_logger()
        statement = self.tracker.statement
        with self._lock:
            if self._halt_reason is not None:
                self._poll_timer.cancel()
                return 0
            if statement.lifecycle is LifecycleState.PENDING:
                return 0
            viewable = statement.can_request_results
            if not viewable:
                self._halt_locked(HaltReason.NOT_VIEWABLE)
            elif self._buffer.full:
                # Nothing a further page carries could be kept.
                self._halt_locked(HaltReason.TRUNCATED)
            halted = self._halt_reason is not None
            cursor = self._cursor
            parser = self._parser
        if halted:
            self._notify()
            return 0

        self.fetch_count += 1
        with sentry_sdk.start_span(op="results.poll", description=self.handle.name):
            try:
                page = self.fetcher.fetch(self.handle, cursor)
                rows = self._parse(parser, page.rows)
            except FlinkResultsError as e:
                return self._fetch_failed(e)

        with self._lock:
            if self._disposed:
                return 0
            result = self._buffer.append(rows)
            self._cursor = page.next_cursor
            self._error = None
            if self._needle is not None:
                self._filtered.extend(
                    row
                    for row in self._buffer.since(len(self._buffer) - result.appended)
                    if _row_matches(row, self._needle, self._visible_columns)
                )
            if result.truncated:
                log.info(
                    "results limit reached",
                    statement=self.handle.name,
                    limit=self.results_limit,
                    dropped=result.dropped,
                )
                self._halt_locked(HaltReason.TRUNCATED)
            elif page.done:
                self._halt_locked(HaltReason.COMPLETED)
        self._notify()
        return result.appended

    def _parse(self, parser: RowParser, raw_rows: Sequence[Any]) -> list[NormalizedRow]:
        try:
            return parser.parse_many(raw_rows)
        except (ValueError, TypeError, AttributeError) as e:
            msg = f"Could not parse result rows of statement '{self.handle.name}': {e}"
            raise MalformedResponseError(msg) from e

    def _fetch_failed(self, error: FlinkResultsError) -> int:
        log = structlog.get_logger()
        if error.retryable:
            log.warning(
                "result fetch failed, retrying next tick",
                statement=self.handle.name,
                error=error.message,
            )
            return 0

        log.error(
            "result fetch failed",
            statement=self.handle.name,
            error=error.message,
            error_type=type(error).__name__,
        )
        sentry_sdk.capture_exception(error)
        with self._lock:
            if self._disposed:
                return 0
            self._error = {"message": error.user_message}
            self._halt_locked(HaltReason.ERROR)
        self._notify()
        return 0

    # -- refresh loop ----------------------------------------------------------

    def refresh_once(self) -> LifecycleState:
        if self._disposed or self.tracker.is_terminal:
            self._refresh_timer.cancel()
            return self.tracker.state
        return self.tracker.refresh()

    def _on_statement_update(self, statement: StatementMetadata) -> None:
        with self._lock:
            if self._disposed:
                return
            columns = [col.name for col in statement.columns]
            if columns != self._parser.column_names:
                self._parser = RowParser(columns)
        # The terminal transition gets its own single notification.
        if not statement.is_terminal:
            self._notify()

    def _on_terminal(self, state: LifecycleState) -> None:
        with self._lock:
            if self._disposed:
                return
            self._halt_locked(HaltReason.TERMINAL)
        self._refresh_timer.cancel()
        structlog.get_logger().info(
            "statement reached terminal state",
            statement=self.handle.name,
            state=state.value,
        )
        self._notify()

    # -- stopping --------------------------------------------------------------

    def stop_statement(self) -> Future[None]:
        """Ask the loader to stop the statement, off the caller's thread."""
        if self._stop_executor is None:
            self._stop_executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"statement-stop-{self.handle.name}"
            )
        return self._stop_executor.submit(self._stop)

    def _stop(self) -> None:
        try:
            self.loader.stop_statement(self.handle)
        except FlinkResultsError as e:
            sentry_sdk.capture_exception(e)
            structlog.get_logger().error(
                "failed to stop statement", statement=self.handle.name, error=e.message
            )
            with self._lock:
                if self._disposed:
                    return
                self._error = {"message": STOP_FAILED_MESSAGE}
            self._notify()
            return
        # The refresh callbacks notify about whatever the stop changed.
        if not self._disposed:
            self.refresh_once()

    # -- message protocol ------------------------------------------------------

    def handle_message(
        self, message_type: str | MessageType, body: dict[str, Any] | None = None
    ) -> Any:
        """Answer one UI message from in-memory state.

        Raises:
            UnknownMessageError: unknown ``message_type``.
            MessageValidationError: malformed ``body``, e.g. a negative page.
        """
        kind, payload = parse_message(message_type, body)
        handler = self._handlers[kind]
        return handler(self, payload)

    def _get_results(self, body: GetResultsBody) -> dict[str, Any]:
        offset = body.page * body.page_size
        with self._lock:
            if self._needle is None:
                rows = self._buffer.slice(body.page, body.page_size)
            else:
                rows = self._filtered[offset : offset + body.page_size]
        return {"results": rows}

    def _get_results_count(self, _body: MessageBody) -> dict[str, int]:
        with self._lock:
            return {
                "total": len(self._buffer),
                "filter": len(self._buffer) if self._needle is None else len(self._filtered),
            }

    def _get_schema(self, _body: MessageBody) -> dict[str, Any]:
        return {"columns": list(self.tracker.statement.columns)}

    def _get_stream_state(self, _body: MessageBody) -> str:
        return self.stream_state.value

    def _get_stream_error(self, _body: MessageBody) -> dict[str, str] | None:
        with self._lock:
            return dict(self._error) if self._error is not None else None

    def _get_search_query(self, _body: MessageBody) -> str | None:
        with self._lock:
            return self._search

    def _set_search(self, body: SearchBody) -> None:
        with self._lock:
            self._search = body.search or None
            self._needle = self._search.lower() if self._search else None
            self._rebuild_filter_locked()
        self._notify()

    def _set_visible_columns(self, body: SetVisibleColumnsBody) -> None:
        with self._lock:
            self._visible_columns = body.visible_columns
            self._rebuild_filter_locked()
            searching = self._needle is not None
        if searching:
            self._notify()

    def _rebuild_filter_locked(self) -> None:
        if self._needle is None:
            self._filtered = []
            return
        self._filtered = [
            row
            for row in self._buffer.rows()
            if _row_matches(row, self._needle, self._visible_columns)
        ]

    def _get_statement_meta(self, _body: MessageBody) -> dict[str, Any]:
        statement = self.tracker.statement
        return {
            "name": statement.handle.name,
            "status": statement.phase,
            "startTime": statement.created_at.isoformat() if statement.created_at else None,
            "detail": statement.detail,
            "failed": statement.failed,
            "stoppable": statement.stoppable,
            "areResultsViewable": statement.can_request_results,
        }

    def _stop_message(self, _body: MessageBody) -> Future[None]:
        return self.stop_statement()

    _handlers: dict[MessageType, Callable[[ResultsManager, Any], Any]] = {
        MessageType.GET_RESULTS: _get_results,
        MessageType.GET_RESULTS_COUNT: _get_results_count,
        MessageType.GET_SCHEMA: _get_schema,
        MessageType.GET_STREAM_STATE: _get_stream_state,
        MessageType.GET_STREAM_ERROR: _get_stream_error,
        MessageType.GET_SEARCH_QUERY: _get_search_query,
        MessageType.SEARCH: _set_search,
        MessageType.SET_VISIBLE_COLUMNS: _set_visible_columns,
        MessageType.GET_STATEMENT_META: _get_statement_meta,
        MessageType.STOP_STATEMENT: _stop_message,
    }
