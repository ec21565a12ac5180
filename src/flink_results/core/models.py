"""Statement and result models for flink-results.

Pydantic models describe what the Flink SQL API returns (statement documents,
result pages); NormalizedRow is the API-agnostic row shape the results buffer
stores and the message protocol hands out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Any
from urllib.parse import parse_qs, urlparse

import structlog
from pydantic import BaseModel, ConfigDict, Field


class LifecycleState(StrEnum):
    """Lifecycle of a submitted statement, one-directional towards a terminal state."""

    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    STOPPED = "Stopped"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {LifecycleState.COMPLETED, LifecycleState.FAILED, LifecycleState.STOPPED}
)

# Raw API phases -> lifecycle. Transitional phases (STOPPING, FAILING) still
# produce results and are not terminal yet.
_PHASES: dict[str, LifecycleState] = {
    "PENDING": LifecycleState.PENDING,
    "RUNNING": LifecycleState.RUNNING,
    "DEGRADED": LifecycleState.RUNNING,
    "STOPPING": LifecycleState.RUNNING,
    "FAILING": LifecycleState.RUNNING,
    "COMPLETED": LifecycleState.COMPLETED,
    "FAILED": LifecycleState.FAILED,
    "STOPPED": LifecycleState.STOPPED,
    "DELETING": LifecycleState.STOPPED,
}


def lifecycle_from_phase(phase: str | None) -> LifecycleState:
    if phase is None:
        return LifecycleState.PENDING
    state = _PHASES.get(phase.upper())
    if state is None:
        structlog.get_logger().warning("unknown statement phase", phase=phase)
        return LifecycleState.PENDING
    return state


class StreamState(StrEnum):
    """Whether the manager is still pulling result pages."""

    RUNNING = "running"
    COMPLETED = "completed"


class Operation(IntEnum):
    """Flink changelog operation attached to every result row."""

    INSERT = 0
    UPDATE_BEFORE = 1
    UPDATE_AFTER = 2
    DELETE = 3


class _AbsentType:
    """Marker for a column value the API row did not carry at all."""

    _instance: _AbsentType | None = None

    def __new__(cls) -> _AbsentType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = _AbsentType()

UNASSIGNED_SEQ = -1


@dataclass(frozen=True, slots=True)
class NormalizedRow:
    """One parsed result row.

    ``seq`` is the row's position in the results buffer, assigned at append
    time; rows fresh from the parser carry UNASSIGNED_SEQ.
    """

    seq: int
    op: Operation
    values: dict[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return dict(self.values)


class ColumnDetails(BaseModel):
    """A column of a statement's result schema."""

    model_config = ConfigDict(extra="allow")

    name: str
    type: dict[str, Any] = Field(default_factory=dict)

    @property
    def type_name(self) -> str:
        return str(self.type.get("type", "UNKNOWN"))


class ResultSchema(BaseModel):
    columns: list[ColumnDetails] = Field(default_factory=list)


class StatementHandle(BaseModel):
    """Identifies one remote statement. Immutable for the life of a manager."""

    model_config = ConfigDict(frozen=True)

    name: str
    organization_id: str
    environment_id: str
    compute_pool_id: str | None = None
    cluster_id: str | None = None


class StatementMetadata(BaseModel):
    """Status and schema of a statement as last reported by the API."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    handle: StatementHandle
    phase: str = "PENDING"
    detail: str | None = None
    result_schema: ResultSchema = Field(default_factory=ResultSchema)
    append_only: bool = True
    upsert_columns: list[int] | None = None
    sql_kind: str | None = None
    sql_statement: str | None = None
    created_at: datetime | None = None
    stopped: bool = False
    document: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(
        cls, payload: dict[str, Any], handle: StatementHandle
    ) -> StatementMetadata:
        """Build metadata from a ``sql/v1`` statement document."""
        status = payload.get("status") or {}
        traits = status.get("traits") or {}
        spec = payload.get("spec") or {}
        metadata = payload.get("metadata") or {}
        return cls(
            handle=handle,
            phase=status.get("phase") or "PENDING",
            detail=status.get("detail") or None,
            result_schema=ResultSchema.model_validate(traits.get("schema") or {}),
            append_only=traits.get("is_append_only", True),
            upsert_columns=traits.get("upsert_columns"),
            sql_kind=traits.get("sql_kind"),
            sql_statement=spec.get("statement"),
            created_at=metadata.get("created_at"),
            stopped=bool(spec.get("stopped", False)),
            document=payload,
        )

    @property
    def lifecycle(self) -> LifecycleState:
        return lifecycle_from_phase(self.phase)

    @property
    def columns(self) -> list[ColumnDetails]:
        return self.result_schema.columns

    @property
    def is_terminal(self) -> bool:
        return self.lifecycle.is_terminal

    @property
    def failed(self) -> bool:
        return self.lifecycle is LifecycleState.FAILED

    @property
    def stoppable(self) -> bool:
        return not self.stopped and self.lifecycle in (
            LifecycleState.PENDING,
            LifecycleState.RUNNING,
        )

    @property
    def can_request_results(self) -> bool:
        return self.lifecycle in (
            LifecycleState.RUNNING,
            LifecycleState.COMPLETED,
            LifecycleState.STOPPED,
        )


class RawRow(BaseModel):
    """A result row exactly as the statement-results API sends it."""

    op: int | None = None
    row: list[Any] | dict[str, Any]


def extract_page_token(next_url: str | None) -> str | None:
    """Pull the ``page_token`` query parameter out of a ``metadata.next`` URL."""
    if not next_url:
        return None
    values = parse_qs(urlparse(next_url).query).get("page_token")
    if not values or not values[0]:
        return None
    return values[0]


class ResultPage(BaseModel):
    """One response of the statement-results endpoint."""

    rows: list[RawRow] = Field(default_factory=list)
    next_cursor: str | None = None

    @property
    def done(self) -> bool:
        return self.next_cursor is None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> ResultPage:
        results = payload.get("results") or {}
        metadata = payload.get("metadata") or {}
        return cls.model_validate(
            {
                "rows": results.get("data") or [],
                "next_cursor": extract_page_token(metadata.get("next")),
            }
        )


class ResultsView(BaseModel):
    """A page of normalized rows ready for an output formatter."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[str]
    rows: list[NormalizedRow]

    @property
    def row_count(self) -> int:
        return len(self.rows)
