"""
_accumulation.py
================
The dense lineage × query match-count table.

Counters are ``uint32``.  They are never allowed to wrap: an increment or
merge that would push a cell past ``MAX_COUNT`` raises
``CounterOverflowError`` and leaves the table unchanged.
"""

from typing import Iterator, Sequence, Tuple

import numpy as np

from splitscan._errors import CounterOverflowError, IndexOutOfRange


class AccumulationTable:
    """
    Zero-initialised ``(n_lineages, n_queries)`` counter matrix.

    Parameters
    ----------
    n_lineages, n_queries : int
        Table dimensions (L and Q).

    Examples
    --------
    >>> t = AccumulationTable(2, 1)
    >>> t.increment(0, 0)
    >>> t.get(0, 0), t.get(1, 0)
    (1, 0)
    """

    DTYPE = np.uint32
    MAX_COUNT = int(np.iinfo(np.uint32).max)

    def __init__(self, n_lineages: int, n_queries: int) -> None:
        if n_lineages < 0 or n_queries < 0:
            raise ValueError(
                f"Table dimensions must be non-negative, got "
                f"({n_lineages}, {n_queries})"
            )
        self._counts = np.zeros((n_lineages, n_queries), dtype=self.DTYPE)

    # ------------------------------------------------------------------ #

    @property
    def n_lineages(self) -> int:
        return int(self._counts.shape[0])

    @property
    def n_queries(self) -> int:
        return int(self._counts.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.n_lineages, self.n_queries)

    @property
    def counts(self) -> np.ndarray:
        """Read-only view of the underlying ``uint32`` matrix."""
        view = self._counts.view()
        view.flags.writeable = False
        return view

    def get(self, lineage_index: int, query_index: int) -> int:
        self._check_index(lineage_index, query_index)
        return int(self._counts[lineage_index, query_index])

    def increment(self, lineage_index: int, query_index: int, amount: int = 1) -> None:
        """
        Add *amount* to cell ``[lineage_index, query_index]``.

        Raises
        ------
        IndexOutOfRange        if either index is outside the table.
        CounterOverflowError   if the cell would exceed ``MAX_COUNT``.
        """
        self._check_index(lineage_index, query_index)
        current = int(self._counts[lineage_index, query_index])
        if current + amount > self.MAX_COUNT:
            raise CounterOverflowError(
                f"Counter [{lineage_index}, {query_index}] would exceed "
                f"{self.MAX_COUNT} ({current} + {amount})"
            )
        self._counts[lineage_index, query_index] = current + amount

    def add_counts(self, partial: np.ndarray) -> None:
        """
        Element-wise merge of a partial count matrix into this table.

        Raises
        ------
        ValueError             on shape mismatch or negative counts.
        CounterOverflowError   if any merged cell would exceed ``MAX_COUNT``.
        """
        partial = np.asarray(partial)
        if partial.shape != self._counts.shape:
            raise ValueError(
                f"Cannot merge partial table of shape {partial.shape} into "
                f"table of shape {self._counts.shape}"
            )
        if partial.size == 0:
            return
        if np.any(partial < 0):
            raise ValueError("Partial tables must not contain negative counts")
        merged = self._counts.astype(np.uint64) + partial.astype(np.uint64)
        if int(merged.max()) > self.MAX_COUNT:
            i, j = np.unravel_index(int(np.argmax(merged)), merged.shape)
            raise CounterOverflowError(
                f"Counter [{i}, {j}] would exceed {self.MAX_COUNT} "
                f"after merge ({int(merged[i, j])})"
            )
        self._counts[...] = merged.astype(self.DTYPE)

    def total(self) -> int:
        return int(self._counts.sum(dtype=np.uint64))

    def rows(
        self, lineages: Sequence[str], queries: Sequence[str]
    ) -> Iterator[Tuple[str, str, int]]:
        """
        Yield ``(lineage, query, matches)`` for every cell, lineage-major.

        *lineages* and *queries* must be the sorted label sequences the
        table was accumulated against.
        """
        if len(lineages) != self.n_lineages or len(queries) != self.n_queries:
            raise ValueError(
                f"Label lists ({len(lineages)}, {len(queries)}) do not match "
                f"table shape {self.shape}"
            )
        for i in range(self.n_lineages):
            for j in range(self.n_queries):
                yield lineages[i], queries[j], int(self._counts[i, j])

    def _check_index(self, lineage_index: int, query_index: int) -> None:
        if not (0 <= lineage_index < self.n_lineages) or not (
            0 <= query_index < self.n_queries
        ):
            raise IndexOutOfRange(
                f"Index ({lineage_index}, {query_index}) outside table of "
                f"shape {self.shape}"
            )

    def __repr__(self) -> str:
        return f"AccumulationTable(shape={self.shape}, total={self.total()})"
