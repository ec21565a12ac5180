"""HTTP clients for the Flink SQL statements API.

Wraps a shared requests.Session with per-request timeouts, sentry spans,
and exception mapping to the FlinkResultsError hierarchy.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Protocol

import requests
import sentry_sdk
import structlog

from flink_results.core.exceptions import (
    ApiError,
    MalformedResponseError,
    NetworkError,
    TimeoutError,
)
from flink_results.core.models import StatementHandle

if TYPE_CHECKING:
    from flink_results.core.config import ResolvedConfig


class FlinkSqlHttpClient:
    """Requests against ``.../organizations/{org}/environments/{env}/statements``."""

    def __init__(
        self,
        statements_url: str,
        *,
        auth: tuple[str, str] | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.statements_url = statements_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        log = structlog.get_logger()
        url = f"{self.statements_url}{path}"
        kwargs.setdefault("timeout", self.timeout)
        if self.auth:
            kwargs["auth"] = self.auth

        with sentry_sdk.start_span(op="http.client", description=f"{method} {path}") as span:
            start_time = time.monotonic()
            try:
                response = self.session.request(method, url, **kwargs)
            except requests.Timeout as e:
                span.set_status("deadline_exceeded")
                log.warning("request timeout", method=method, url=url)
                msg = f"Request timed out after {self.timeout}s: {method} {url}"
                raise TimeoutError(msg) from e
            except requests.ConnectionError as e:
                span.set_status("unavailable")
                log.warning("connection failed", method=method, url=url, error=str(e))
                raise NetworkError(f"Connection failed to {url}: {e}") from e

            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("status_code", response.status_code)
            span.set_data("duration_ms", duration_ms)
            log.debug(
                "request complete",
                method=method,
                path=path,
                status=response.status_code,
                duration_ms=f"{duration_ms:.1f}",
            )

            if response.status_code >= 400:
                span.set_status("internal_error")
                msg = f"{method} {path} failed with HTTP {response.status_code}: {response.text[:200]}"
                raise ApiError(msg, status_code=response.status_code)

            if not response.content:
                return {}
            try:
                payload = response.json()
            except ValueError as e:
                msg = f"{method} {path} returned a body that is not JSON"
                raise MalformedResponseError(msg) from e
            if not isinstance(payload, dict):
                msg = f"{method} {path} returned {type(payload).__name__}, expected an object"
                raise MalformedResponseError(msg)
            return payload


class StatementResultsApi(FlinkSqlHttpClient):
    def get_statement_results(
        self, name: str, page_token: str | None = None
    ) -> dict[str, Any]:
        params = {"page_token": page_token} if page_token else None
        return self._request("GET", f"/{name}/results", params=params)


class StatementsApi(FlinkSqlHttpClient):
    def get_statement(self, name: str) -> dict[str, Any]:
        return self._request("GET", f"/{name}")

    def stop_statement(self, name: str, document: dict[str, Any]) -> dict[str, Any]:
        """PUT the statement back with ``spec.stopped`` set."""
        body = dict(document)
        body["spec"] = {**(document.get("spec") or {}), "stopped": True}
        return self._request("PUT", f"/{name}", json=body)


class FlinkSqlApiProvider(Protocol):
    """Hands out the two API clients a statement needs."""

    def statement_results_api(self, handle: StatementHandle) -> StatementResultsApi: ...

    def statements_api(self, handle: StatementHandle) -> StatementsApi: ...


class CCloudApiProvider:
    """Builds API clients from resolved configuration, sharing one session."""

    def __init__(
        self, config: ResolvedConfig, session: requests.Session | None = None
    ) -> None:
        config.require_connection()
        self.config = config
        self.session = session or requests.Session()

    def __enter__(self) -> CCloudApiProvider:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _statements_url(self, handle: StatementHandle) -> str:
        return (
            f"{self.config.rest_endpoint}/sql/v1/organizations/{handle.organization_id}"
            f"/environments/{handle.environment_id}/statements"
        )

    def _client_kwargs(self) -> dict[str, Any]:
        auth = None
        if self.config.api_key and self.config.api_secret:
            auth = (self.config.api_key, self.config.api_secret)
        return {
            "auth": auth,
            "timeout": self.config.request_timeout,
            "session": self.session,
        }

    def statement_results_api(self, handle: StatementHandle) -> StatementResultsApi:
        return StatementResultsApi(self._statements_url(handle), **self._client_kwargs())

    def statements_api(self, handle: StatementHandle) -> StatementsApi:
        return StatementsApi(self._statements_url(handle), **self._client_kwargs())

    def handle_for(self, name: str) -> StatementHandle:
        """Handle for a statement in the configured organization/environment."""
        return StatementHandle(
            name=name,
            organization_id=self.config.organization_id or "",
            environment_id=self.config.environment_id or "",
            compute_pool_id=self.config.compute_pool_id,
        )

    def close(self) -> None:
        self.session.close()
