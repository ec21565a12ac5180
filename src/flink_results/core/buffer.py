"""Append-only, capacity-bounded store of normalized result rows.

Rows are never reordered or removed. Once ``limit`` rows are held, further
appends are rejected and reported as dropped so the caller can stop polling.
The buffer itself is not synchronized; ResultsManager serializes access.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flink_results.core.models import NormalizedRow


@dataclass(frozen=True)
class AppendResult:
    appended: int
    dropped: int

    @property
    def truncated(self) -> bool:
        return self.dropped > 0


class ResultsBuffer:
    def __init__(self, limit: int) -> None:
        if limit < 1:
            msg = f"results limit must be >= 1, got {limit}"
            raise ValueError(msg)
        self.limit = limit
        self._rows: list[NormalizedRow] = []

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def full(self) -> bool:
        return len(self._rows) >= self.limit

    def count(self) -> int:
        return len(self._rows)

    def append(self, rows: Sequence[NormalizedRow]) -> AppendResult:
        """Append rows in order, assigning sequence numbers.

        Rows that do not fit are discarded and reported in the result.
        """
        room = self.limit - len(self._rows)
        accepted = rows[: max(room, 0)]
        start = len(self._rows)
        self._rows.extend(
            replace(row, seq=start + offset) for offset, row in enumerate(accepted)
        )
        return AppendResult(appended=len(accepted), dropped=len(rows) - len(accepted))

    def slice(self, page: int, page_size: int) -> list[NormalizedRow]:
        """Return ``rows[page*page_size : page*page_size + page_size]``.

        Ranges past the end yield an empty list.
        """
        if page < 0 or page_size < 1:
            msg = f"invalid page range: page={page}, page_size={page_size}"
            raise ValueError(msg)
        offset = page * page_size
        return self._rows[offset : offset + page_size]

    def rows(self) -> list[NormalizedRow]:
        """Copy of every buffered row."""
        return list(self._rows)

    def since(self, seq: int) -> list[NormalizedRow]:
        """Rows with a sequence number of ``seq`` or later."""
        return self._rows[max(seq, 0) :]
