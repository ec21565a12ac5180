"""Tests for ResultsWatcher."""

import pytest

from flink_results.core.exceptions import ApiError
from flink_results.core.manager import HaltReason
from flink_results.core.session import ResultsSession
from flink_results.core.watch import ResultsWatcher


@pytest.fixture
def session(provider, loader, fetcher):
    session = ResultsSession(
        provider,
        results_limit=10_000,
        polling_interval_ms=1,
        refresh_interval_ms=100,
        loader=loader,
        fetcher=fetcher,
    )
    yield session
    session.close()


@pytest.fixture
def batches():
    return []


@pytest.fixture
def emit(batches):
    def record(columns, rows):
        batches.append((columns, [row.as_dict() for row in rows]))

    return record


@pytest.mark.unit
class TestResultsWatcher:
    def test_prints_every_row_once(self, session, statement, emit, batches, expected_rows):
        summary = ResultsWatcher(session, emit, page_size=3, idle_timeout_s=0.05).run(statement)
        printed = [row for _, rows in batches for row in rows]
        assert printed == expected_rows
        assert summary.rows_printed == 10
        assert summary.total_rows == 10
        assert summary.halt_reason == HaltReason.COMPLETED
        assert summary.error is None
        assert summary.status == "RUNNING"

    def test_columns_from_schema(self, session, statement, emit, batches):
        ResultsWatcher(session, emit, idle_timeout_s=0.05).run(statement)
        assert all(columns == ["when_reported", "tempf"] for columns, _ in batches)

    def test_search(self, session, statement, emit, batches):
        summary = ResultsWatcher(session, emit, search="80.8", idle_timeout_s=0.05).run(statement)
        printed = [row for _, rows in batches for row in rows]
        assert [row["tempf"] for row in printed] == ["80.8"] * 4
        assert summary.rows_printed == 4
        assert summary.total_rows == 10

    def test_error_reported(self, session, statement, emit, results_api):
        results_api.get_statement_results.side_effect = ApiError("denied", status_code=401)
        summary = ResultsWatcher(session, emit, idle_timeout_s=0.05).run(statement)
        assert summary.error == "Authentication required."
        assert summary.rows_printed == 0

    def test_invalid_page_size(self, session, emit):
        with pytest.raises(ValueError):
            ResultsWatcher(session, emit, page_size=0)
