"""Statement metadata loading and stopping.

The results manager never talks to the statements API directly; it goes
through a ResourceLoader so retry policy for metadata lives in one place.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import sentry_sdk
import structlog

from flink_results.core.exceptions import ApiError
from flink_results.core.models import StatementMetadata

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import TypeVar

    from flink_results.core.client import FlinkSqlApiProvider
    from flink_results.core.models import StatementHandle

    T = TypeVar("T")


def _is_conflict(err: Exception) -> bool:
    return isinstance(err, ApiError) and err.status_code == 409


class ResourceLoader:
    """Refreshes and stops statements through the statements API.

    Stopping retries up to ``max_retries`` times with a constant
    ``backoff_s`` delay, but only on HTTP 409 (the statement document
    changed under us); every other error is raised immediately.
    """

    def __init__(
        self,
        provider: FlinkSqlApiProvider,
        max_retries: int = 60,
        backoff_s: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_retries < 1:
            msg = f"max_retries must be >= 1, got {max_retries}"
            raise ValueError(msg)
        self.provider = provider
        self.max_retries = max_retries
        self.backoff_s = backoff_s
        self._sleep = sleep

    def refresh_statement(self, handle: StatementHandle) -> StatementMetadata | None:
        """Latest metadata for the statement, or None if it no longer exists."""
        api = self.provider.statements_api(handle)
        try:
            payload = api.get_statement(handle.name)
        except ApiError as e:
            if e.status_code == 404:
                structlog.get_logger().info(
                    "statement not found", statement=handle.name
                )
                return None
            raise
        return StatementMetadata.from_api(payload, handle)

    def stop_statement(self, handle: StatementHandle) -> None:
        api = self.provider.statements_api(handle)

        def _stop() -> None:
            document = api.get_statement(handle.name)
            api.stop_statement(handle.name, document)

        with sentry_sdk.start_span(op="statement.stop", description=handle.name):
            self._retry_on_conflict(_stop, "stop statement")
        structlog.get_logger().info("statement stop requested", statement=handle.name)

    def _retry_on_conflict(self, operation: Callable[[], T], operation_name: str) -> T:
        log = structlog.get_logger()
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except ApiError as e:
                if not _is_conflict(e) or attempt >= self.max_retries:
                    raise
                log.debug(
                    "retrying after conflict",
                    operation=operation_name,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    backoff_s=self.backoff_s,
                )
                self._sleep(self.backoff_s)
