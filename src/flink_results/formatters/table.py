"""Rich table formatter for result rows."""

from __future__ import annotations

import shutil
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from flink_results.formatters.base import cell_text, registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flink_results.core.models import ResultsView

_NO_RESULTS = "No results"


def _truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 1] + "…"


class TableFormatter:
    def __init__(self, width: int = 40) -> None:
        self.width = width

    def format(self, view: ResultsView) -> Iterator[str]:
        if not view.rows:
            yield _NO_RESULTS
            return

        table = Table(show_edge=True, pad_edge=True)
        for name in view.columns:
            table.add_column(name, no_wrap=True)

        for row in view.rows:
            table.add_row(
                *(
                    _truncate(cell_text(row.values.get(name)), self.width)
                    for name in view.columns
                )
            )

        buf = StringIO()
        term_width = shutil.get_terminal_size((120, 24)).columns
        console = Console(file=buf, force_terminal=True, width=term_width)
        console.print(table)
        yield buf.getvalue().rstrip("\n")


registry.register("table", TableFormatter)
