"""Exception hierarchy for flink-results.

All exceptions carry an exit_code for CLI return value mapping.
API-facing errors additionally say whether the failed call may be retried,
which drives the poll loop's keep-going / halt decision.
"""

from __future__ import annotations

from flink_results.core.exit_codes import ExitCode

_USER_MESSAGES: dict[int, str] = {
    401: "Authentication required.",
    403: "Insufficient permissions to read statement results.",
    404: "Statement not found.",
    429: "Too many requests. Try again later.",
}

_RETRYABLE_STATUSES = frozenset({408, 409, 429})


class FlinkResultsError(Exception):
    """Base exception for all flink-results errors."""

    exit_code: int = ExitCode.GENERAL_ERROR
    retryable: bool = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "An internal error occurred."


class NetworkError(FlinkResultsError):
    """Connection failures, unreachable host."""

    exit_code: int = ExitCode.NETWORK_ERROR
    retryable: bool = True

    @property
    def user_message(self) -> str:
        return "Unable to reach the Flink SQL service."


class TimeoutError(NetworkError):
    """Request timeout, connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class ApiError(FlinkResultsError):
    """The Flink SQL API answered with an error status."""

    exit_code: int = ExitCode.API_ERROR

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = status_code in _RETRYABLE_STATUSES or status_code >= 500

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES.get(self.status_code, "Something went wrong.")


class MalformedResponseError(FlinkResultsError):
    """Response body could not be decoded or did not match the API schema."""

    exit_code: int = ExitCode.API_ERROR


class InputError(FlinkResultsError):
    """File not found, invalid parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class MessageValidationError(InputError):
    """A results-manager message body failed validation."""


class UnknownMessageError(MessageValidationError):
    """A results-manager message type is not part of the protocol."""


class ConfigError(FlinkResultsError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR
