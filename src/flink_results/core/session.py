"""Holder of the one results manager a results panel shows at a time."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

from flink_results.core.fetcher import ResultPageFetcher
from flink_results.core.loader import ResourceLoader
from flink_results.core.manager import ResultsManager

if TYPE_CHECKING:
    from collections.abc import Callable

    from flink_results.core.client import FlinkSqlApiProvider
    from flink_results.core.models import StatementMetadata


class ResultsSession:
    """Owns the current ResultsManager.

    Opening a statement disposes the previous manager first, so at most one
    pair of poll/refresh timers is alive per session.
    """

    def __init__(
        self,
        provider: FlinkSqlApiProvider,
        *,
        results_limit: int,
        polling_interval_ms: int,
        refresh_interval_ms: int,
        loader: ResourceLoader | None = None,
        fetcher: ResultPageFetcher | None = None,
    ) -> None:
        self.provider = provider
        self.results_limit = results_limit
        self.polling_interval_ms = polling_interval_ms
        self.refresh_interval_ms = refresh_interval_ms
        self.loader = loader or ResourceLoader(provider)
        self.fetcher = fetcher or ResultPageFetcher(provider)
        self._lock = threading.Lock()
        self._manager: ResultsManager | None = None

    def __enter__(self) -> ResultsSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def manager(self) -> ResultsManager | None:
        return self._manager

    def open(
        self,
        statement: StatementMetadata,
        notify: Callable[[], None],
        *,
        start: bool = True,
    ) -> ResultsManager:
        with self._lock:
            previous = self._manager
            if previous is not None:
                structlog.get_logger().debug(
                    "replacing results manager",
                    previous=previous.handle.name,
                    statement=statement.handle.name,
                )
                previous.dispose()
            self._manager = ResultsManager(
                statement,
                self.fetcher,
                self.loader,
                notify,
                results_limit=self.results_limit,
                polling_interval_ms=self.polling_interval_ms,
                refresh_interval_ms=self.refresh_interval_ms,
                start=start,
            )
            return self._manager

    def close(self) -> None:
        with self._lock:
            if self._manager is not None:
                self._manager.dispose()
                self._manager = None
