"""Result page fetching for one statement.

Continuation is cursor-based: the page token from the previous page's
``metadata.next`` is sent back verbatim, so re-fetching after a failure
returns the same rows instead of skipping or repeating any.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pydantic
import structlog

from flink_results.core.exceptions import MalformedResponseError
from flink_results.core.models import ResultPage

if TYPE_CHECKING:
    from flink_results.core.client import FlinkSqlApiProvider, StatementResultsApi
    from flink_results.core.models import StatementHandle


class ResultPageFetcher:
    def __init__(self, provider: FlinkSqlApiProvider) -> None:
        self.provider = provider
        self._apis: dict[StatementHandle, StatementResultsApi] = {}

    def _api(self, handle: StatementHandle) -> StatementResultsApi:
        api = self._apis.get(handle)
        if api is None:
            api = self.provider.statement_results_api(handle)
            self._apis[handle] = api
        return api

    def fetch(self, handle: StatementHandle, cursor: str | None = None) -> ResultPage:
        """Fetch the page following ``cursor`` (the first page when None).

        Raises NetworkError/ApiError from the client, or MalformedResponseError
        when the payload does not look like a statement-results page.
        """
        log = structlog.get_logger()
        payload = self._api(handle).get_statement_results(handle.name, page_token=cursor)
        try:
            page = ResultPage.from_api(payload)
        except (pydantic.ValidationError, AttributeError, TypeError) as e:
            msg = f"Malformed results page for statement '{handle.name}': {e}"
            raise MalformedResponseError(msg) from e

        log.debug(
            "fetched result page",
            statement=handle.name,
            rows=len(page.rows),
            more=not page.done,
        )
        return page
