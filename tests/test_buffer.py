"""Tests for the bounded results buffer."""

import pytest

from flink_results.core.buffer import ResultsBuffer
from flink_results.core.models import UNASSIGNED_SEQ, NormalizedRow, Operation


def rows(n, start=0):
    return [
        NormalizedRow(seq=UNASSIGNED_SEQ, op=Operation.INSERT, values={"n": i})
        for i in range(start, start + n)
    ]


@pytest.mark.unit
class TestAppend:
    def test_append_assigns_sequence(self):
        buffer = ResultsBuffer(limit=10)
        buffer.append(rows(3))
        buffer.append(rows(2, start=3))
        assert [row.seq for row in buffer.rows()] == [0, 1, 2, 3, 4]

    def test_append_reports_count(self):
        result = ResultsBuffer(limit=10).append(rows(4))
        assert result.appended == 4
        assert result.dropped == 0
        assert not result.truncated

    def test_overflow_is_dropped_and_reported(self):
        buffer = ResultsBuffer(limit=5)
        buffer.append(rows(3))
        result = buffer.append(rows(4, start=3))
        assert result.appended == 2
        assert result.dropped == 2
        assert result.truncated
        assert buffer.count() == 5

    def test_existing_rows_unchanged_on_overflow(self):
        buffer = ResultsBuffer(limit=2)
        buffer.append(rows(2))
        before = buffer.rows()
        buffer.append(rows(3, start=2))
        assert buffer.rows() == before

    def test_full(self):
        buffer = ResultsBuffer(limit=2)
        assert not buffer.full
        buffer.append(rows(2))
        assert buffer.full

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            ResultsBuffer(limit=0)


@pytest.mark.unit
class TestSlice:
    @pytest.fixture
    def buffer(self):
        buffer = ResultsBuffer(limit=100)
        buffer.append(rows(10))
        return buffer

    def test_slice(self, buffer):
        assert [row.values["n"] for row in buffer.slice(1, 3)] == [3, 4, 5]

    def test_slice_clipped_to_length(self, buffer):
        assert [row.values["n"] for row in buffer.slice(3, 3)] == [9]

    def test_slice_past_end_is_empty(self, buffer):
        assert buffer.slice(5, 3) == []

    def test_empty_buffer(self):
        assert ResultsBuffer(limit=5).slice(0, 10) == []

    @pytest.mark.parametrize(("page", "page_size"), [(-1, 10), (0, 0), (0, -5)])
    def test_invalid_range(self, buffer, page, page_size):
        with pytest.raises(ValueError):
            buffer.slice(page, page_size)

    def test_slice_stable_across_appends(self, buffer):
        first = buffer.slice(0, 5)
        buffer.append(rows(5, start=10))
        assert buffer.slice(0, 5) == first

    def test_since(self, buffer):
        assert [row.seq for row in buffer.since(8)] == [8, 9]
