"""
_forest.py
==========
A collection of trees reduced to their bipartitions, packed into one flat
buffer for bulk lineage/query match counting.

Public API
----------
  BipartitionForest(trees, numbering)
      Constructor.  Accepts parsed ``Tree`` objects that share one tip set
      and the ``TipNumbering`` that maps their labels to global indices.

  BipartitionForest.from_newick(newick_strings, lineages, queries)
      Parse, sort both registries, number tips from the first tree, build.

  .accumulate(lineages, queries, backend='best') -> AccumulationTable
      Score every split of every tree into a fresh L × Q table.

  .total_splits() -> int
      Sum of per-tree split counts (diagnostic).

Logging
-------
One logger per module, ``logging.getLogger(__name__)``:

  INFO level:    System and numba status (once, on import), available
                 backends, forest statistics, accumulation summary.
  WARNING level: Consolidated polytomy warning, numba performance warnings.
  DEBUG level:   Per-tree split listings (``log_splits``).

Silence it in the standard way, or with ``splitscan.quiet()``:

    logging.getLogger('splitscan').setLevel(logging.WARNING)

Memory layout
-------------
Every tree's split words are concatenated into one 2-D buffer with a
CSR-style offset vector (one entry per tree plus a sentinel):

  all_splits    : uint32 (total_splits, n_words)
  split_offsets : int64  (n_trees + 1,)
      Tree i owns rows [split_offsets[i], split_offsets[i+1]).

Backends
--------
  'python'        Sequential reference loop over BipartitionSet.accumulate.
  'cpu-parallel'  numba kernel.  Trees are split into contiguous chunks,
                  one per thread; each chunk counts into a private int64
                  table and the partial tables are merged into the result
                  by addition, so both backends give identical tables.
  'best'          Last entry of get_available_backends().
"""

import logging
from typing import Iterable, Iterator, List

import numba
import numpy as np

from splitscan._accumulation import AccumulationTable
from splitscan._backend import (
    get_available_backends,
    get_best_backend,
    resolve_backend,
)
from splitscan._bits import word_count
from splitscan._context import get_backend_override, suppress_logger
from splitscan._cpu_kernels import _accumulate_njit
from splitscan._errors import (
    IndexOutOfRange,
    InconsistentTipNumbering,
    RegistryNotSorted,
)
from splitscan._logging import (
    compute_memory_footprint,
    install_numba_warning_filter,
    log_accumulation_summary,
    log_backend_availability,
    log_forest_statistics,
    log_optimization_status,
    log_polytomy_warning,
    log_split_listing,
)
from splitscan._numbering import TipNumbering
from splitscan._splits import BipartitionSet
from splitscan._taxa import TaxonRegistry
from splitscan._tree import Tree

logger = logging.getLogger(__name__)

_BACKENDS_AVAILABLE = get_available_backends()

# Track first calls to kernels for compilation logging
_kernel_first_call = {"cpu-parallel": True}

# Log system info and backend availability on module import
log_optimization_status()
log_backend_availability(_BACKENDS_AVAILABLE)
install_numba_warning_filter()


class BipartitionForest:
    """
    The bipartitions of a set of trees over one shared tip set.

    Parameters
    ----------
    trees : iterable of Tree
        At least one tree.  Every tree must carry exactly the tip set of
        the numbering's reference tree.
    numbering : TipNumbering

    Attributes (read-only after construction)
    -----------------------------------------
    n_trees       : int
    n_tips        : int     Tips per tree.
    n_words       : int     uint32 words per split.
    numbering     : TipNumbering
    all_splits    : uint32 (total_splits, n_words)
    split_offsets : int64  (n_trees + 1,)

    Raises
    ------
    ValueError                 if *trees* is empty.
    InconsistentTipNumbering   if a tree's tip set differs from the
                               reference tree's.

    Examples
    --------
    >>> lineages = TaxonRegistry(['A', 'B'])
    >>> queries = TaxonRegistry(['Q1'])
    >>> forest = BipartitionForest.from_newick(
    ...     ['((A,Q1),(B,C));'], lineages, queries)
    >>> forest.accumulate(lineages, queries).counts
    array([[1],
           [0]], dtype=uint32)
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(self, trees: Iterable[Tree], numbering: TipNumbering) -> None:
        trees = list(trees)
        if not trees:
            raise ValueError("A forest needs at least one tree.")

        self.numbering = numbering
        self.n_trees: int = len(trees)
        self.n_tips: int = numbering.n_tips
        self.n_words: int = word_count(self.n_tips)

        polytomous = []
        self._sets: List[BipartitionSet] = []
        for ti, tree in enumerate(trees):
            if not tree.is_binary:
                polytomous.append(ti)
            try:
                tip_index = numbering.tip_indices(tree)
            except InconsistentTipNumbering as e:
                raise InconsistentTipNumbering(f"Tree {ti}: {e}") from None
            self._sets.append(BipartitionSet.from_tree(tree, tip_index))

        log_polytomy_warning(len(polytomous), polytomous, self.n_trees)

        self._pack_csr()
        self._log_statistics_method()

    @classmethod
    def from_newick(
        cls,
        newick_strings: Iterable[str],
        lineages: TaxonRegistry,
        queries: TaxonRegistry,
    ) -> "BipartitionForest":
        """
        Parse *newick_strings* and build a forest numbered for *lineages*
        and *queries*.

        Both registries are sorted in place.  The first tree is the
        reference for the tip numbering.

        Raises
        ------
        ValueError                 on malformed NEWICK or an empty list.
        InconsistentTipNumbering   on mismatched tip sets, or a lineage or
                                   query label missing from the first tree.
        """
        newick_strings = list(newick_strings)
        if not newick_strings:
            raise ValueError("A forest needs at least one tree.")

        logger.info("Parsing %d tree(s) from NEWICK strings...", len(newick_strings))
        with suppress_logger("splitscan._tree"):
            trees = [Tree(nwk) for nwk in newick_strings]

        lineages.sort()
        queries.sort()
        numbering = TipNumbering(trees[0].leaf_names(), lineages, queries)
        return cls(trees, numbering)

    def _pack_csr(self) -> None:
        """
        **Private.**  Concatenate every tree's split words into
        ``all_splits`` and build ``split_offsets``.
        """
        split_counts = np.array(
            [s.split_count() for s in self._sets], dtype=np.int64
        )
        self.split_offsets = np.zeros(self.n_trees + 1, dtype=np.int64)
        self.split_offsets[1:] = np.cumsum(split_counts)

        self.all_splits = np.ascontiguousarray(
            np.concatenate([s.words for s in self._sets], axis=0),
            dtype=np.uint32,
        )

    def _log_statistics_method(self) -> None:
        """**Private.**  Log forest statistics at the end of __init__."""
        split_counts = np.diff(self.split_offsets)
        log_forest_statistics(
            self.n_trees,
            self.n_tips,
            self.n_words,
            self.total_splits(),
            int(split_counts.min()),
            int(split_counts.max()),
            compute_memory_footprint(self),
        )

    # ================================================================== #
    # Public methods                                                       #
    # ================================================================== #

    def size(self) -> int:
        return self.n_trees

    def total_splits(self) -> int:
        """Sum of every tree's split count."""
        return int(self.split_offsets[-1])

    def accumulate(
        self,
        lineages: TaxonRegistry,
        queries: TaxonRegistry,
        backend: str = "best",
    ) -> AccumulationTable:
        """
        Count, for every (lineage, query) pair, the splits that isolate the
        lineage from all other lineages together with the query.

        Parameters
        ----------
        lineages, queries : TaxonRegistry
            The sorted registries this forest was numbered for.
        backend : str, default 'best'
            'python', 'cpu-parallel' or 'best'.  A ``use_backend`` block
            takes precedence.  An unavailable backend falls back to the
            best one with a warning.

        Returns
        -------
        AccumulationTable
            Fresh ``(L, Q)`` table.  Nothing is returned if any error
            occurs during the pass.

        Raises
        ------
        RegistryNotSorted          if either registry is unsorted.
        InconsistentTipNumbering   if the registries differ from the ones
                                   the tip numbering was built with.
        IndexOutOfRange            if a split and the lineage mask are
                                   inconsistent.
        CounterOverflowError       if a counter would exceed its maximum.
        """
        # ── 1. Validate registries ───────────────────────────────────────
        for registry in (lineages, queries):
            if not registry.is_sorted:
                raise RegistryNotSorted(
                    "accumulate() requires sorted registries; call sort() first."
                )
        if not self.numbering.matches(lineages, queries):
            raise InconsistentTipNumbering(
                "Lineage/query registries differ from the ones used to number "
                "this forest's tips."
            )

        # ── 2. Build masks once ─────────────────────────────────────────
        n_lineages = lineages.size()
        n_queries = queries.size()
        lineage_mask = lineages.make_mask(0)
        query_mask = queries.make_mask(n_lineages)
        if query_mask.size_in_bits() > self.n_tips:
            raise IndexOutOfRange(
                f"{query_mask.size_in_bits()} lineage/query tips do not fit "
                f"in splits of {self.n_tips} tips"
            )

        # ── 3. Resolve backend ──────────────────────────────────────────
        backend_override = get_backend_override()
        if backend_override is not None:
            backend = backend_override

        try:
            resolved_backend = resolve_backend(backend)
        except ValueError as e:
            logger.warning(str(e))
            resolved_backend = get_best_backend()

        logger.info(
            "accumulate(L=%d, Q=%d, backend=%r)", n_lineages, n_queries, resolved_backend
        )

        # ── 4. Dispatch ─────────────────────────────────────────────────
        table = AccumulationTable(n_lineages, n_queries)

        if resolved_backend == "cpu-parallel":
            if _kernel_first_call.get("cpu-parallel", False):
                logger.info("  Compiling cpu-parallel kernel (cached for future calls)")
                _kernel_first_call["cpu-parallel"] = False
            n_informative = self._accumulate_parallel(table, lineage_mask)

        elif resolved_backend == "python":
            n_informative = 0
            for split_set in self._sets:
                n_informative += split_set.accumulate(table, lineage_mask, query_mask)

        else:
            raise RuntimeError(
                f"Internal error: unhandled backend {resolved_backend!r}"
            )

        log_accumulation_summary(
            resolved_backend, self.n_trees, n_informative, table.total()
        )
        return table

    def log_splits(self, lineages, queries) -> None:
        """
        Log every tree's splits at DEBUG level as ``"side|side"`` strings
        over the lineage and query labels.
        """
        for ti, split_set in enumerate(self._sets):
            log_split_listing(ti, split_set.describe(lineages, queries))

    # ================================================================== #
    # Container protocol                                                   #
    # ================================================================== #

    def __len__(self) -> int:
        return self.n_trees

    def __getitem__(self, index: int) -> BipartitionSet:
        return self._sets[index]

    def __iter__(self) -> Iterator[BipartitionSet]:
        return iter(self._sets)

    def __repr__(self) -> str:
        return (
            f"BipartitionForest(n_trees={self.n_trees}, n_tips={self.n_tips}, "
            f"total_splits={self.total_splits()})"
        )

    # ================================================================== #
    # Private helper methods                                               #
    # ================================================================== #

    def _accumulate_parallel(self, table: AccumulationTable, lineage_mask) -> int:
        """
        **Private.**  Run the cpu-parallel kernel and merge its partial
        tables into *table*.  Returns the number of informative splits.
        """
        n_lineages, n_queries = table.shape
        n_chunks = max(1, min(self.n_trees, numba.get_num_threads()))
        chunk_offsets = np.array(
            [(c * self.n_trees) // n_chunks for c in range(n_chunks + 1)],
            dtype=np.int64,
        )

        partial_tables = np.zeros((n_chunks, n_lineages, n_queries), dtype=np.int64)
        informative_out = np.zeros(n_chunks, dtype=np.int64)
        status_out = np.zeros(n_chunks, dtype=np.int64)

        _accumulate_njit(
            self.all_splits,
            self.split_offsets,
            chunk_offsets,
            np.array(lineage_mask.words, dtype=np.uint32),
            n_lineages,
            n_queries,
            partial_tables,
            informative_out,
            status_out,
        )

        failed = np.flatnonzero(status_out)
        if failed.size:
            row = int(status_out[failed[0]]) - 1
            ti = int(np.searchsorted(self.split_offsets, row, side="right")) - 1
            raise IndexOutOfRange(
                f"Lone lineage bit not found for split {row - int(self.split_offsets[ti])} "
                f"of tree {ti}; split and lineage mask are inconsistent"
            )

        for c in range(n_chunks):
            table.add_counts(partial_tables[c])
        return int(informative_out.sum())
