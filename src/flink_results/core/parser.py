"""Row parsing: raw statement-results rows into NormalizedRow.

This is the only place that knows the wire shape of a result row. Parsing
never raises on missing or null values; a missing value becomes ABSENT and
a null stays None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flink_results.core.models import (
    ABSENT,
    UNASSIGNED_SEQ,
    NormalizedRow,
    Operation,
    RawRow,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from flink_results.core.models import ColumnDetails


def _column_name(index: int) -> str:
    return f"col_{index}"


def parse_operation(op: int | None) -> Operation:
    """Flink may drop ``op`` entirely, which means INSERT."""
    if op is None:
        return Operation.INSERT
    try:
        return Operation(op)
    except ValueError:
        return Operation.INSERT


class RowParser:
    """Maps raw rows onto the column names of one result schema."""

    def __init__(self, columns: Sequence[ColumnDetails | str]) -> None:
        self.column_names = [
            col if isinstance(col, str) else col.name for col in columns
        ]

    def parse(self, raw: RawRow | dict[str, Any]) -> NormalizedRow:
        if not isinstance(raw, RawRow):
            raw = RawRow.model_validate(raw)

        if isinstance(raw.row, dict):
            values = self._from_mapping(raw.row)
        else:
            values = self._from_sequence(raw.row)

        return NormalizedRow(
            seq=UNASSIGNED_SEQ, op=parse_operation(raw.op), values=values
        )

    def parse_many(self, rows: Iterable[RawRow | dict[str, Any]]) -> list[NormalizedRow]:
        return [self.parse(row) for row in rows]

    def _from_sequence(self, row: list[Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for index, name in enumerate(self.column_names):
            values[name] = row[index] if index < len(row) else ABSENT
        for index in range(len(self.column_names), len(row)):
            values[_column_name(index)] = row[index]
        return values

    def _from_mapping(self, row: dict[str, Any]) -> dict[str, Any]:
        values = {name: row.get(name, ABSENT) for name in self.column_names}
        for name, value in row.items():
            if name not in values:
                values[name] = value
        return values
