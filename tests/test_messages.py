"""Tests for message-protocol parsing."""

import pytest

from flink_results.core.exceptions import MessageValidationError, UnknownMessageError
from flink_results.core.messages import (
    EmptyBody,
    GetResultsBody,
    MessageType,
    SearchBody,
    SetVisibleColumnsBody,
    parse_message,
)


@pytest.mark.unit
class TestParseMessage:
    def test_get_results(self):
        kind, body = parse_message("GetResults", {"page": 2, "pageSize": 50})
        assert kind is MessageType.GET_RESULTS
        assert isinstance(body, GetResultsBody)
        assert body.page == 2
        assert body.page_size == 50

    def test_python_field_names_accepted(self):
        _, body = parse_message(MessageType.GET_RESULTS, {"page": 0, "page_size": 5})
        assert body.page_size == 5

    def test_unknown_keys_ignored(self):
        _, body = parse_message("GetResultsCount", {"timestamp": 1716206400000})
        assert isinstance(body, EmptyBody)

    def test_missing_body(self):
        _, body = parse_message("GetStreamState")
        assert isinstance(body, EmptyBody)

    def test_search(self):
        _, body = parse_message("Search", {"search": "80.8"})
        assert isinstance(body, SearchBody)
        assert body.search == "80.8"

    def test_visible_columns(self):
        _, body = parse_message("SetVisibleColumns", {"visibleColumns": ["tempf"]})
        assert isinstance(body, SetVisibleColumnsBody)
        assert body.visible_columns == ["tempf"]

    @pytest.mark.parametrize(
        "body",
        [
            {"page": -1, "pageSize": 10},
            {"page": 0, "pageSize": 0},
            {"page": "first", "pageSize": 10},
            {"pageSize": 10},
            {"page": "0", "pageSize": "10"},
            {"page": True, "pageSize": 10},
            {"page": 0, "pageSize": False},
            {"page": 1.0, "pageSize": 10},
            {"page": 0, "pageSize": 10.0},
        ],
    )
    def test_invalid_get_results(self, body):
        with pytest.raises(MessageValidationError, match="Invalid GetResults body"):
            parse_message("GetResults", body)

    def test_body_must_be_object(self):
        with pytest.raises(MessageValidationError, match="must be an object"):
            parse_message("Search", ["80.8"])

    def test_unknown_type(self):
        with pytest.raises(UnknownMessageError, match="PreviewResult"):
            parse_message("PreviewResult", {})

    def test_protocol_is_closed(self):
        assert {t.value for t in MessageType} == {
            "GetResults",
            "GetResultsCount",
            "GetSchema",
            "GetStreamState",
            "GetStreamError",
            "GetSearchQuery",
            "Search",
            "SetVisibleColumns",
            "GetStatementMeta",
            "StopStatement",
        }
