"""Tests for the Flink SQL HTTP clients and API provider."""

from unittest.mock import MagicMock

import pytest
import requests

from flink_results.core.client import (
    CCloudApiProvider,
    FlinkSqlHttpClient,
    StatementResultsApi,
    StatementsApi,
)
from flink_results.core.config import ResolvedConfig
from flink_results.core.exceptions import (
    ApiError,
    ConfigError,
    MalformedResponseError,
    NetworkError,
    TimeoutError,
)

STATEMENTS_URL = "https://flink.example/sql/v1/organizations/org-1/environments/env-1/statements"


def make_response(status=200, payload=None, content=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.text = text
    if content is None:
        content = b"{}" if payload is None else b"payload"
    response.content = content
    response.json.return_value = payload
    return response


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(payload={"ok": True})
    return session


@pytest.fixture
def client(session):
    return FlinkSqlHttpClient(STATEMENTS_URL + "/", auth=("key", "secret"), timeout=5, session=session)


@pytest.mark.unit
class TestRequest:
    def test_builds_url_and_passes_auth_and_timeout(self, client, session):
        assert client._request("GET", "/s1") == {"ok": True}
        session.request.assert_called_once_with(
            "GET", f"{STATEMENTS_URL}/s1", timeout=5, auth=("key", "secret")
        )

    def test_timeout_mapped(self, client, session):
        session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(TimeoutError):
            client._request("GET", "/s1")

    def test_connection_error_mapped(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(NetworkError, match="Connection failed"):
            client._request("GET", "/s1")

    def test_http_error_mapped(self, client, session):
        session.request.return_value = make_response(status=403, text="forbidden")
        with pytest.raises(ApiError) as exc_info:
            client._request("GET", "/s1")
        assert exc_info.value.status_code == 403
        assert not exc_info.value.retryable

    def test_server_error_is_retryable(self, client, session):
        session.request.return_value = make_response(status=503, text="unavailable")
        with pytest.raises(ApiError) as exc_info:
            client._request("GET", "/s1")
        assert exc_info.value.retryable

    def test_empty_body(self, client, session):
        session.request.return_value = make_response(content=b"")
        assert client._request("PUT", "/s1") == {}

    def test_non_json_body(self, client, session):
        response = make_response(content=b"<html>")
        response.json.side_effect = ValueError("no json")
        session.request.return_value = response
        with pytest.raises(MalformedResponseError):
            client._request("GET", "/s1")

    def test_non_object_body(self, client, session):
        session.request.return_value = make_response(payload=[1, 2, 3])
        with pytest.raises(MalformedResponseError, match="expected an object"):
            client._request("GET", "/s1")


@pytest.mark.unit
class TestStatementResultsApi:
    def test_first_page(self, session):
        api = StatementResultsApi(STATEMENTS_URL, session=session)
        api.get_statement_results("weather-stream")
        args, kwargs = session.request.call_args
        assert args == ("GET", f"{STATEMENTS_URL}/weather-stream/results")
        assert kwargs["params"] is None

    def test_next_page(self, session):
        api = StatementResultsApi(STATEMENTS_URL, session=session)
        api.get_statement_results("weather-stream", page_token="page-2")
        assert session.request.call_args.kwargs["params"] == {"page_token": "page-2"}


@pytest.mark.unit
class TestStatementsApi:
    def test_get_statement(self, session):
        StatementsApi(STATEMENTS_URL, session=session).get_statement("weather-stream")
        assert session.request.call_args.args == ("GET", f"{STATEMENTS_URL}/weather-stream")

    def test_stop_statement_sets_stopped(self, session, make_document):
        document = make_document("RUNNING")
        StatementsApi(STATEMENTS_URL, session=session).stop_statement("weather-stream", document)
        args, kwargs = session.request.call_args
        assert args == ("PUT", f"{STATEMENTS_URL}/weather-stream")
        assert kwargs["json"]["spec"]["stopped"] is True
        assert kwargs["json"]["spec"]["statement"] == document["spec"]["statement"]
        assert document["spec"]["stopped"] is False


@pytest.mark.unit
class TestCCloudApiProvider:
    @pytest.fixture
    def config(self):
        return ResolvedConfig(
            rest_endpoint="https://flink.example",
            organization_id="org-1",
            environment_id="env-1",
            api_key="key",
            api_secret="secret",  # pragma: allowlist secret
            request_timeout=12,
        )

    def test_requires_connection(self):
        with pytest.raises(ConfigError):
            CCloudApiProvider(ResolvedConfig())

    def test_clients_share_session(self, config, session, handle):
        provider = CCloudApiProvider(config, session=session)
        results_api = provider.statement_results_api(handle)
        statements_api = provider.statements_api(handle)
        assert results_api.session is statements_api.session is session
        assert results_api.statements_url == STATEMENTS_URL
        assert results_api.auth == ("key", "secret")
        assert results_api.timeout == 12

    def test_handle_for(self, config, session):
        handle = CCloudApiProvider(config, session=session).handle_for("s1")
        assert handle.name == "s1"
        assert handle.organization_id == "org-1"
        assert handle.environment_id == "env-1"

    def test_context_manager_closes_session(self, config, session):
        with CCloudApiProvider(config, session=session):
            pass
        session.close.assert_called_once()
