"""Tests for JSONFormatter."""

import json

import pytest

from flink_results.formatters.base import Formatter
from flink_results.formatters.json import JSONFormatter


@pytest.mark.unit
def test_json_formatter_implements_protocol():
    assert isinstance(JSONFormatter(), Formatter)


@pytest.mark.unit
def test_rows_as_objects(view):
    output = "\n".join(JSONFormatter().format(view))
    assert json.loads(output) == [
        {"when_reported": "2025-05-20 12:00:00.000", "tempf": "80.4"},
        {"when_reported": "2025-05-20 12:01:00.000", "tempf": None},
    ]


@pytest.mark.unit
def test_pretty_by_default(view):
    lines = list(JSONFormatter().format(view))
    assert len(lines) == 1
    assert "\n  " in lines[0]


@pytest.mark.unit
def test_compact_single_line(view):
    lines = list(JSONFormatter(compact=True).format(view))
    assert len(lines) == 1
    assert "\n" not in lines[0]


@pytest.mark.unit
def test_absent_becomes_null(absent_view):
    output = "".join(JSONFormatter(compact=True).format(absent_view))
    assert json.loads(output) == [{"when_reported": "2025-05-20 12:00:00.000", "tempf": None}]


@pytest.mark.unit
def test_missing_column_becomes_null(view_factory):
    view = view_factory([{"when_reported": "t0"}])
    output = "".join(JSONFormatter(compact=True).format(view))
    assert json.loads(output) == [{"when_reported": "t0", "tempf": None}]


@pytest.mark.unit
def test_nested_values_kept(view_factory):
    view = view_factory([{"tags": ["a", "b"], "attrs": {"k": 1}}], columns=["tags", "attrs"])
    output = "".join(JSONFormatter(compact=True).format(view))
    assert json.loads(output) == [{"tags": ["a", "b"], "attrs": {"k": 1}}]


@pytest.mark.unit
def test_empty_view(empty_view):
    assert list(JSONFormatter(compact=True).format(empty_view)) == ["[]"]
