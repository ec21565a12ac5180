"""Message protocol between a results manager and its UI layer.

Message types form a closed set. Bodies are validated with pydantic; keys a
newer UI may add (``timestamp`` and the like) are ignored.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from flink_results.core.exceptions import MessageValidationError, UnknownMessageError


class MessageType(StrEnum):
    GET_RESULTS = "GetResults"
    GET_RESULTS_COUNT = "GetResultsCount"
    GET_SCHEMA = "GetSchema"
    GET_STREAM_STATE = "GetStreamState"
    GET_STREAM_ERROR = "GetStreamError"
    GET_SEARCH_QUERY = "GetSearchQuery"
    SEARCH = "Search"
    SET_VISIBLE_COLUMNS = "SetVisibleColumns"
    GET_STATEMENT_META = "GetStatementMeta"
    STOP_STATEMENT = "StopStatement"


class MessageBody(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class EmptyBody(MessageBody):
    pass


class GetResultsBody(MessageBody):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True, strict=True)

    page: int = Field(ge=0)
    page_size: int = Field(ge=1, alias="pageSize")


class SearchBody(MessageBody):
    search: str | None = None


class SetVisibleColumnsBody(MessageBody):
    visible_columns: list[str] | None = Field(default=None, alias="visibleColumns")


BODY_MODELS: dict[MessageType, type[MessageBody]] = {
    MessageType.GET_RESULTS: GetResultsBody,
    MessageType.SEARCH: SearchBody,
    MessageType.SET_VISIBLE_COLUMNS: SetVisibleColumnsBody,
}


def parse_message_type(value: str | MessageType) -> MessageType:
    try:
        return MessageType(value)
    except ValueError:
        msg = f"Unknown message type: {value!r}"
        raise UnknownMessageError(msg) from None


def parse_message(
    message_type: str | MessageType, body: dict[str, Any] | None = None
) -> tuple[MessageType, MessageBody]:
    """Validate a raw message.

    Raises:
        UnknownMessageError: ``message_type`` is not part of the protocol.
        MessageValidationError: ``body`` does not fit the type's body model.
    """
    kind = parse_message_type(message_type)
    model = BODY_MODELS.get(kind, EmptyBody)
    if body is not None and not isinstance(body, dict):
        msg = f"{kind} body must be an object, got {type(body).__name__}"
        raise MessageValidationError(msg)
    try:
        return kind, model.model_validate(body or {})
    except pydantic.ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        msg = f"Invalid {kind} body: {details}"
        raise MessageValidationError(msg) from e
