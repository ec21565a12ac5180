"""JSON formatter for result rows."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from flink_results.core.models import ABSENT
from flink_results.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flink_results.core.models import ResultsView


def _serialize_value(val: Any) -> Any:
    if val is ABSENT:
        return None
    if isinstance(val, (int, float, str, bool, type(None))):
        return val
    if isinstance(val, (list, dict)):
        return val
    return str(val)


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, view: ResultsView) -> Iterator[str]:
        rows_as_dicts = [
            {col: _serialize_value(row.values.get(col, ABSENT)) for col in view.columns}
            for row in view.rows
        ]

        if self.compact:
            yield json.dumps(rows_as_dicts, default=str)
        else:
            yield json.dumps(rows_as_dicts, indent=2, default=str)


registry.register("json", JSONFormatter)
