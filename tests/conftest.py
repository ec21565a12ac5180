"""Shared test fixtures for flink-results."""

import json
import time
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from flink_results.cli.main import app
from flink_results.core.client import StatementResultsApi, StatementsApi
from flink_results.core.fetcher import ResultPageFetcher
from flink_results.core.models import (
    ABSENT,
    NormalizedRow,
    Operation,
    ResultsView,
    StatementHandle,
    StatementMetadata,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"
RESULT_PAGE_COUNT = 5


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def load_fixture():
    def load(relative_path: str):
        return json.loads((FIXTURES_DIR / relative_path).read_text())

    return load


@pytest.fixture
def result_pages(load_fixture):
    """The five statement-results responses of the weather-stream statement."""
    return [
        load_fixture(f"statement-results/get-statement-results-{i}.json")
        for i in range(1, RESULT_PAGE_COUNT + 1)
    ]


@pytest.fixture
def expected_rows(load_fixture):
    return load_fixture("statement-results/expected-parsed-results.json")


@pytest.fixture
def eventually():
    """Retry an assertion until it passes or ``timeout`` seconds elapse."""

    def wait(assertion, timeout: float = 10.0, interval: float = 0.01):
        deadline = time.monotonic() + timeout
        while True:
            try:
                return assertion()
            except AssertionError:
                if time.monotonic() >= deadline:
                    raise
                time.sleep(interval)

    return wait


@pytest.fixture
def handle():
    return StatementHandle(
        name="weather-stream",
        organization_id="org-1",
        environment_id="env-1",
        compute_pool_id="lfcp-1",
    )


def statement_document(phase: str = "RUNNING", **spec_overrides) -> dict:
    return {
        "api_version": "sql/v1",
        "kind": "Statement",
        "name": "weather-stream",
        "organization_id": "org-1",
        "environment_id": "env-1",
        "metadata": {"created_at": "2025-05-20T11:59:00Z", "resource_version": "7"},
        "spec": {
            "statement": "SELECT when_reported, tempf FROM weather",
            "compute_pool_id": "lfcp-1",
            "stopped": False,
            **spec_overrides,
        },
        "status": {
            "phase": phase,
            "detail": "",
            "traits": {
                "sql_kind": "SELECT",
                "is_append_only": True,
                "schema": {
                    "columns": [
                        {"name": "when_reported", "type": {"type": "TIMESTAMP", "nullable": True}},
                        {"name": "tempf", "type": {"type": "VARCHAR", "nullable": True}},
                    ]
                },
            },
        },
    }


@pytest.fixture
def make_document():
    return statement_document


@pytest.fixture
def make_statement(handle):
    def make(phase: str = "RUNNING", **spec_overrides) -> StatementMetadata:
        return StatementMetadata.from_api(statement_document(phase, **spec_overrides), handle)

    return make


@pytest.fixture
def statement(make_statement):
    return make_statement("RUNNING")


@pytest.fixture
def results_api(result_pages):
    """Results API mock serving the fixture pages, then the last page forever."""
    api = MagicMock(spec=StatementResultsApi)
    calls = {"n": 0}

    def get_statement_results(name, page_token=None):
        index = min(calls["n"], len(result_pages) - 1)
        calls["n"] += 1
        return result_pages[index]

    api.get_statement_results.side_effect = get_statement_results
    return api


@pytest.fixture
def statements_api(make_document):
    api = MagicMock(spec=StatementsApi)
    api.get_statement.return_value = make_document("RUNNING")
    return api


@pytest.fixture
def provider(results_api, statements_api):
    provider = MagicMock()
    provider.statement_results_api.return_value = results_api
    provider.statements_api.return_value = statements_api
    return provider


@pytest.fixture
def fetcher(provider):
    return ResultPageFetcher(provider)


@pytest.fixture
def loader(statement):
    """ResourceLoader mock that keeps reporting the statement as RUNNING."""
    loader = MagicMock()
    loader.refresh_statement.return_value = statement
    loader.stop_statement.return_value = None
    return loader


def make_view(values_list: list[dict] | None = None, columns: list[str] | None = None) -> ResultsView:
    if columns is None:
        columns = ["when_reported", "tempf"]
    if values_list is None:
        values_list = [
            {"when_reported": "2025-05-20 12:00:00.000", "tempf": "80.4"},
            {"when_reported": "2025-05-20 12:01:00.000", "tempf": None},
        ]
    rows = [
        NormalizedRow(seq=i, op=Operation.INSERT, values=values)
        for i, values in enumerate(values_list)
    ]
    return ResultsView(columns=columns, rows=rows)


@pytest.fixture
def view():
    """Two weather rows, the second with a NULL temperature."""
    return make_view()


@pytest.fixture
def absent_view():
    return make_view([{"when_reported": "2025-05-20 12:00:00.000", "tempf": ABSENT}])


@pytest.fixture
def empty_view():
    return make_view([])


@pytest.fixture
def view_factory():
    return make_view
