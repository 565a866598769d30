"""
test_cpu_kernels.py
===================
Direct tests for the numba kernels in _cpu_kernels.py.

The kernels are called with hand-built buffers so that each rule can be
checked without going through BipartitionForest.  Tip layout for the
scoring tests: lineages 0=A 1=B 2=C, queries 3=Q1 4=Q2, other 5=X.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from splitscan._cpu_kernels import (
    _accumulate_njit,
    _ctz32_nb,
    _popcount32_nb,
    _score_split_nb,
)

LINEAGE_MASK = np.array([0b111], dtype=np.uint32)


def bits(*tips):
    return sum(1 << t for t in tips)


def run_forest(splits_per_tree, lineage_mask, n_lineages, n_queries, n_chunks):
    """Pack per-tree split word lists and run _accumulate_njit."""
    rows = [w for tree in splits_per_tree for w in tree]
    all_splits = np.array(rows, dtype=np.uint32).reshape(len(rows), 1)
    split_offsets = np.zeros(len(splits_per_tree) + 1, dtype=np.int64)
    split_offsets[1:] = np.cumsum([len(t) for t in splits_per_tree])
    n_trees = len(splits_per_tree)
    chunk_offsets = np.array(
        [(c * n_trees) // n_chunks for c in range(n_chunks + 1)], dtype=np.int64
    )
    partial = np.zeros((n_chunks, n_lineages, n_queries), dtype=np.int64)
    informative = np.zeros(n_chunks, dtype=np.int64)
    status = np.zeros(n_chunks, dtype=np.int64)
    _accumulate_njit(
        all_splits,
        split_offsets,
        chunk_offsets,
        lineage_mask,
        n_lineages,
        n_queries,
        partial,
        informative,
        status,
    )
    return partial, informative, status


class TestBitKernels:
    @pytest.mark.parametrize("x, expected", [(0, 0), (0b1011, 3), (0xFFFFFFFF, 32)])
    def test_popcount(self, x, expected):
        assert _popcount32_nb(np.uint32(x)) == expected

    @pytest.mark.parametrize("x, expected", [(1, 0), (0b1100, 2), (0x80000000, 31)])
    def test_ctz(self, x, expected):
        assert _ctz32_nb(np.uint32(x)) == expected


class TestScoreSplit:
    def score(self, split_bits):
        all_splits = np.array([[split_bits]], dtype=np.uint32)
        table = np.zeros((3, 2), dtype=np.int64)
        k = _score_split_nb(all_splits, 0, LINEAGE_MASK, 3, 2, table)
        return k, table

    def test_single_lineage(self):
        k, table = self.score(bits(1, 3, 4))
        assert k == 1
        np.testing.assert_array_equal(table, [[0, 0], [1, 1], [0, 0]])

    def test_inverted(self):
        k, table = self.score(bits(0, 2, 5))
        assert k == 1
        np.testing.assert_array_equal(table, [[0, 0], [1, 1], [0, 0]])

    @pytest.mark.parametrize("split_bits", [0, bits(3, 4), bits(0, 1, 2), bits(0, 1, 2, 5)])
    def test_uninformative(self, split_bits):
        k, table = self.score(split_bits)
        assert k == -1
        assert table.sum() == 0

    def test_lone_bit_missing(self):
        all_splits = np.array([[0b111]], dtype=np.uint32)
        table = np.zeros((4, 0), dtype=np.int64)
        assert _score_split_nb(all_splits, 0, LINEAGE_MASK, 4, 0, table) == -2


class TestAccumulateKernel:
    FOREST = [
        [bits(0, 3), bits(1, 4)],
        [bits(0, 1)],
        [],
        [bits(2, 3, 4), bits(3, 4)],
    ]
    EXPECTED = np.array([[1, 0], [0, 1], [2, 2]])

    @pytest.mark.parametrize("n_chunks", [1, 2, 4])
    def test_chunks_sum_to_same_table(self, n_chunks):
        partial, informative, status = run_forest(
            self.FOREST, LINEAGE_MASK, 3, 2, n_chunks
        )
        assert not status.any()
        np.testing.assert_array_equal(partial.sum(axis=0), self.EXPECTED)
        assert informative.sum() == 4

    def test_status_reports_failing_row(self):
        partial, informative, status = run_forest(
            [[bits(5)], [0b111]], LINEAGE_MASK, 4, 0, 2
        )
        assert status[0] == 0
        assert status[1] == 2
