"""
tests/test_accumulation.py
==========================
Tests for AccumulationTable: bounds, overflow and partial-table merges.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from splitscan._accumulation import AccumulationTable
from splitscan._errors import CounterOverflowError, IndexOutOfRange


class TestAccumulationTable:
    def test_zero_initialised(self):
        table = AccumulationTable(2, 3)
        assert table.shape == (2, 3)
        assert table.total() == 0
        assert table.counts.dtype == np.uint32

    def test_increment(self):
        table = AccumulationTable(2, 3)
        table.increment(1, 2)
        table.increment(1, 2)
        table.increment(0, 0, amount=5)
        assert table.get(1, 2) == 2
        assert table.get(0, 0) == 5
        assert table.total() == 7

    @pytest.mark.parametrize("i, j", [(2, 0), (0, 3), (-1, 0), (0, -1)])
    def test_out_of_range(self, i, j):
        table = AccumulationTable(2, 3)
        with pytest.raises(IndexOutOfRange):
            table.increment(i, j)
        with pytest.raises(IndexOutOfRange):
            table.get(i, j)

    def test_negative_dimensions(self):
        with pytest.raises(ValueError):
            AccumulationTable(-1, 2)

    def test_counts_read_only(self):
        table = AccumulationTable(1, 1)
        with pytest.raises(ValueError):
            table.counts[0, 0] = 3

    def test_rows_lineage_major(self):
        table = AccumulationTable(2, 2)
        table.increment(0, 1)
        table.increment(1, 0, amount=4)
        assert list(table.rows(["A", "B"], ["Q1", "Q2"])) == [
            ("A", "Q1", 0),
            ("A", "Q2", 1),
            ("B", "Q1", 4),
            ("B", "Q2", 0),
        ]

    def test_rows_label_mismatch(self):
        with pytest.raises(ValueError):
            list(AccumulationTable(2, 1).rows(["A"], ["Q1"]))


class TestOverflow:
    def test_increment_past_max_raises(self):
        table = AccumulationTable(1, 1)
        table.increment(0, 0, amount=AccumulationTable.MAX_COUNT)
        with pytest.raises(CounterOverflowError):
            table.increment(0, 0)
        assert table.get(0, 0) == AccumulationTable.MAX_COUNT

    def test_merge_past_max_raises_and_leaves_table(self):
        table = AccumulationTable(1, 2)
        table.increment(0, 1, amount=AccumulationTable.MAX_COUNT - 1)
        with pytest.raises(CounterOverflowError):
            table.add_counts(np.array([[7, 2]], dtype=np.int64))
        assert table.get(0, 0) == 0
        assert table.get(0, 1) == AccumulationTable.MAX_COUNT - 1

    def test_overflow_is_overflow_error(self):
        table = AccumulationTable(1, 1)
        table.increment(0, 0, amount=AccumulationTable.MAX_COUNT)
        with pytest.raises(OverflowError):
            table.increment(0, 0)


class TestAddCounts:
    def test_merge(self):
        table = AccumulationTable(2, 2)
        table.increment(0, 0)
        table.add_counts(np.array([[1, 2], [3, 4]], dtype=np.int64))
        np.testing.assert_array_equal(table.counts, [[2, 2], [3, 4]])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            AccumulationTable(2, 2).add_counts(np.zeros((2, 3), dtype=np.int64))

    def test_negative_counts(self):
        with pytest.raises(ValueError):
            AccumulationTable(1, 1).add_counts(np.array([[-1]], dtype=np.int64))

    def test_empty_table(self):
        table = AccumulationTable(2, 0)
        table.add_counts(np.zeros((2, 0), dtype=np.int64))
        assert table.total() == 0
