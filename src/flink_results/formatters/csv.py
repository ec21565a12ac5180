"""CSV formatter for result rows (RFC 4180 compliant)."""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING

from flink_results.formatters.base import cell_text, registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flink_results.core.models import ResultsView


def _write_row(values: list[str]) -> str:
    buf = StringIO()
    writer = csv.writer(buf)
    writer.writerow(values)
    return buf.getvalue().rstrip("\r\n")


class CSVFormatter:
    """Writes one CSV line per row, after an optional header line."""

    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header

    def format(self, view: ResultsView) -> Iterator[str]:
        if not self.no_header:
            yield _write_row(list(view.columns))

        for row in view.rows:
            yield _write_row([cell_text(row.values.get(col)) for col in view.columns])


registry.register("csv", CSVFormatter)
