"""
_cpu_kernels.py
===============
CPU-accelerated split scoring kernels using Numba.

This module contains ONLY numba-accelerated code and does not import other
project modules, to keep import-time side effects contained.

Exported Functions
------------------
_popcount32_nb : njit function
    Set-bit count of one 32-bit word.

_ctz32_nb : njit function
    Index of the lowest set bit of a non-zero 32-bit word.

_score_split_nb : njit function
    Scoring rule for one split row of the packed forest buffer.

_accumulate_njit : njit(parallel=True) function
    Forest accumulation.  Trees are partitioned into contiguous chunks;
    each chunk accumulates into its own private table, so the parallel
    loop needs no atomics.  The caller merges the partial tables.

Notes
-----
- Word arithmetic is done in int64 so that complementing a uint32 word
  never changes type mid-expression.
- cache=True persists compiled binaries to disk for faster later runs.
"""

import numpy as np
from numba import njit, prange

# Return codes of _score_split_nb (lineage indices are >= 0).
_UNINFORMATIVE = -1
_LONE_BIT_MISSING = -2


@njit(cache=True)
def _popcount32_nb(x):
    """Number of set bits in the low 32 bits of *x*."""
    v = np.int64(x) & 0xFFFFFFFF
    c = 0
    while v != 0:
        v &= v - 1
        c += 1
    return c


@njit(cache=True)
def _ctz32_nb(x):
    """Index of the lowest set bit of *x*.  Caller guarantees x != 0."""
    v = np.int64(x) & 0xFFFFFFFF
    k = 0
    while (v & 1) == 0:
        v >>= 1
        k += 1
    return k


@njit(cache=True)
def _score_split_nb(all_splits, row, lineage_mask, n_lineages, n_queries, table):
    """
    Score split *row* of *all_splits* into *table*.

    Parameters
    ----------
    all_splits   : uint32[total_splits, n_words]
        Packed split words of the whole forest.
    row          : int
        Row of the split to score.
    lineage_mask : uint32[n_mask_words]
        Bits [0, n_lineages) set.
    n_lineages, n_queries : int
    table        : int64[n_lineages, n_queries]
        Updated in place.

    Returns
    -------
    int
        Credited lineage index (>= 0), _UNINFORMATIVE, or _LONE_BIT_MISSING.
    """
    n_mask_words = lineage_mask.shape[0]

    count = 0
    for i in range(n_mask_words):
        count += _popcount32_nb(
            np.int64(all_splits[row, i]) & np.int64(lineage_mask[i])
        )

    if count == 1:
        invert = False
    elif n_lineages > 1 and count == n_lineages - 1:
        invert = True
    else:
        return _UNINFORMATIVE

    k = -1
    for i in range(n_mask_words):
        w = np.int64(all_splits[row, i])
        m = np.int64(lineage_mask[i])
        if invert:
            v = (~w) & m
        else:
            v = w & m
        if v != 0:
            k = i * 32 + _ctz32_nb(v)
            break

    if k < 0:
        return _LONE_BIT_MISSING

    flip = 1 if invert else 0
    for j in range(n_lineages, n_lineages + n_queries):
        bit = (np.int64(all_splits[row, j >> 5]) >> (j & 31)) & 1
        if bit ^ flip:
            table[k, j - n_lineages] += 1

    return k


@njit(parallel=True, cache=True)
def _accumulate_njit(
        all_splits,
        split_offsets,
        chunk_offsets,
        lineage_mask,
        n_lineages,
        n_queries,
        partial_tables,
        informative_out,
        status_out):
    """
    Numba-compiled forest accumulation.

    The outer loop over chunks runs in parallel via prange.  Chunk c owns
    trees [chunk_offsets[c], chunk_offsets[c+1]) and writes only to
    partial_tables[c], informative_out[c] and status_out[c].

    Parameters
    ----------
    all_splits : uint32[total_splits, n_words]
        CSR-packed split words.
    split_offsets : int64[n_trees+1]
        Row offsets of each tree's splits in all_splits.
    chunk_offsets : int64[n_chunks+1]
        Tree offsets of each chunk.
    lineage_mask : uint32[n_mask_words]
    n_lineages, n_queries : int
    partial_tables : int64[n_chunks, n_lineages, n_queries]
        Zero-filled on entry.
    informative_out : int64[n_chunks]
        Number of informative splits per chunk.
    status_out : int64[n_chunks]
        0 on success; otherwise 1 + the row whose lone lineage bit could
        not be located.  A failing chunk stops at that row.
    """
    n_chunks = chunk_offsets.shape[0] - 1
    for c in prange(n_chunks):
        table = partial_tables[c]
        n_informative = 0
        failed = False
        for ti in range(chunk_offsets[c], chunk_offsets[c + 1]):
            if failed:
                break
            for row in range(split_offsets[ti], split_offsets[ti + 1]):
                k = _score_split_nb(
                    all_splits, row, lineage_mask, n_lineages, n_queries, table
                )
                if k == _LONE_BIT_MISSING:
                    status_out[c] = row + 1
                    failed = True
                    break
                if k >= 0:
                    n_informative += 1
        informative_out[c] = n_informative
