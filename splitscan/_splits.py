"""
_splits.py
==========
Tree bipartitions as bit arrays, and the rule that turns one bipartition
into match counts.

Public API
----------
  BipartitionSet(words, n_tips)
  BipartitionSet.from_tree(tree, tip_index)
      All internal-edge splits of one tree.  Owns a single uint32 buffer of
      shape (split_count, n_words); row r is split r.

  Bipartition
      Non-owning (set, row) view into a BipartitionSet buffer.

  .classify(lineage_mask)            → (lineage_index, invert) | None
  .score(table, lineage_mask, query_mask)  → bool

Scoring rule
------------
For a split S and the lineage mask M_L (bits [0, L) set):

  1. c = popcount(S & M_L)
  2. informative iff c == 1 or c == L - 1; otherwise nothing happens
  3. invert = (c != 1)  — the lone lineage is on the "0" side
  4. k = lowest set bit of (S & M_L), or of (~S & M_L) when inverted,
     found by scanning mask words in increasing order
  5. for every query tip j in [L, L+Q): if bit j of S (complemented when
     inverted) is set, table[k, j - L] += 1

With L == 1 the ``c == L - 1`` branch would read ``c == 0`` and is treated
as unreachable: only ``c == 1`` is informative.  With L == 2 both branches
describe the same split and ``c == 1`` wins.

Split orientation
-----------------
``from_tree`` stores every split with global tip 0 on the "1" side.  For
L >= 3 the rule is side-label-invariant, so this only matters when L <= 2,
where it makes the result independent of how the NEWICK string happened to
be rooted.
"""

import logging
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from splitscan._bits import (
    WORD_BITS,
    extract_bit,
    find_first_set,
    popcount32,
    popcount_words,
    tail_mask,
    word_count,
)
from splitscan._errors import IndexOutOfRange, InconsistentTipNumbering

logger = logging.getLogger(__name__)


class Bipartition:
    """
    A view of one split inside a ``BipartitionSet``.

    Bit *i* of ``words`` gives the side of global tip *i*.  The view holds
    a reference to its owning set, never a copy of the bits.
    """

    __slots__ = ("_owner", "_row")

    def __init__(self, owner: "BipartitionSet", row: int) -> None:
        self._owner = owner
        self._row = row

    @property
    def words(self) -> np.ndarray:
        return self._owner.words[self._row]

    @property
    def n_bits(self) -> int:
        return self._owner.n_tips

    def extract_tip_state(self, index: int) -> int:
        if index < 0 or index >= self.n_bits:
            raise IndexOutOfRange(
                f"Tip {index} outside split of {self.n_bits} tips"
            )
        return extract_bit(self.words, index)

    def mask_and_popcount(self, mask) -> int:
        """Number of tips set both in this split and in *mask*."""
        words = self.words
        self._check_mask(mask)
        return sum(popcount32(int(words[i]) & mask[i]) for i in range(len(mask)))

    def classify(self, lineage_mask) -> Optional[Tuple[int, bool]]:
        """
        Apply steps 1–4 of the scoring rule.

        Returns
        -------
        (lineage_index, invert)   if the split isolates exactly one lineage.
        None                      otherwise.

        Raises
        ------
        IndexOutOfRange   if the mask is longer than the split, or the lone
                          lineage bit cannot be located.
        """
        self._check_mask(lineage_mask)
        return Bipartition._classify_core(
            self.words, lineage_mask.words, lineage_mask.size_in_bits()
        )

    def score(self, table, lineage_mask, query_mask) -> bool:
        """
        Score this split into *table*.

        Returns True if the split was informative (whether or not any query
        fell on the lineage's side).
        """
        hit = self.classify(lineage_mask)
        if hit is None:
            return False
        lineage_index, invert = hit

        n_lineages = lineage_mask.size_in_bits()
        end = query_mask.size_in_bits()
        if end > self.n_bits:
            raise IndexOutOfRange(
                f"Query mask of {end} bits exceeds split of {self.n_bits} tips"
            )

        words = self.words
        flip = 1 if invert else 0
        for j in range(n_lineages, end):
            if extract_bit(words, j) ^ flip:
                table.increment(lineage_index, j - n_lineages)
        return True

    def to_string(self, lineages: Sequence[str], queries: Sequence[str]) -> str:
        """
        Render the named tips as ``"side-1 labels|side-0 labels"``.
        Tips outside both groups are omitted.
        """
        left = []
        right = []
        n_lineages = len(lineages)
        for i, label in enumerate(lineages):
            (left if self.extract_tip_state(i) else right).append(label)
        for i, label in enumerate(queries):
            (left if self.extract_tip_state(n_lineages + i) else right).append(label)
        return ",".join(left) + "|" + ",".join(right)

    def _check_mask(self, mask) -> None:
        if mask.size_in_elements() > self.words.shape[0]:
            raise IndexOutOfRange(
                f"Mask of {mask.size_in_bits()} bits is longer than split of "
                f"{self.n_bits} tips"
            )

    def __repr__(self) -> str:
        bits = "".join(str(extract_bit(self.words, i)) for i in range(self.n_bits))
        return f"Bipartition({bits!r})"

    # ------------------------------------------------------------------ #

    @staticmethod
    def _classify_core(words, mask_words, n_lineages: int):
        """
        **Private static.**  Steps 1–4 of the scoring rule on raw words.

        Parameters
        ----------
        words      : uint32 array   Split words (at least len(mask_words)).
        mask_words : uint32 array   Lineage mask words.
        n_lineages : int            L.
        """
        if n_lineages == 0:
            return None

        n_mask_words = mask_words.shape[0]
        count = 0
        for i in range(n_mask_words):
            count += popcount32(int(words[i]) & int(mask_words[i]))

        if count == 1:
            invert = False
        elif n_lineages > 1 and count == n_lineages - 1:
            invert = True
        else:
            return None

        for i in range(n_mask_words):
            w = int(words[i])
            m = int(mask_words[i])
            v = (~w & m) if invert else (w & m)
            if v != 0:
                return i * WORD_BITS + find_first_set(v), invert

        raise IndexOutOfRange(
            f"Lone lineage bit not found in {n_mask_words} mask word(s); "
            f"split and lineage mask are inconsistent"
        )


class BipartitionSet:
    """
    All internal-edge bipartitions of one tree.

    Parameters
    ----------
    words : uint32 array, shape (split_count, word_count(n_tips))
        One row per split.  The set keeps its own read-only copy.
    n_tips : int
        Number of tips (bits per split).
    """

    def __init__(self, words: np.ndarray, n_tips: int) -> None:
        if n_tips < 1:
            raise ValueError(f"A split needs at least one tip, got n_tips={n_tips}")
        n_words = word_count(n_tips)
        words = np.array(words, dtype=np.uint32, copy=True).reshape(-1, n_words)
        words.flags.writeable = False
        self._words = words
        self.n_tips: int = int(n_tips)
        self.n_words: int = n_words

    @classmethod
    def from_tree(cls, tree, tip_index: np.ndarray) -> "BipartitionSet":
        """
        Build the splits of *tree* with leaves numbered by *tip_index*
        (``tip_index[local_leaf_id] = global index``).

        Raises
        ------
        InconsistentTipNumbering   if *tip_index* is not a permutation of
                                   ``range(tree.n_leaves)``.
        """
        tip_index = np.asarray(tip_index, dtype=np.int64)
        n_tips = tree.n_leaves
        if tip_index.shape != (n_tips,) or not np.array_equal(
            np.sort(tip_index), np.arange(n_tips)
        ):
            raise InconsistentTipNumbering(
                f"Tip indices for a {n_tips}-tip tree must be a permutation "
                f"of 0..{n_tips - 1}"
            )
        words = BipartitionSet._tree_split_words(
            tree.left_child, tree.right_child, tree.synthetic, n_tips, tip_index
        )
        return cls(words, n_tips)

    # ------------------------------------------------------------------ #

    @property
    def words(self) -> np.ndarray:
        """Read-only ``(split_count, n_words)`` uint32 buffer."""
        return self._words

    def split_count(self) -> int:
        return int(self._words.shape[0])

    def accumulate(self, table, lineage_mask, query_mask) -> int:
        """
        Score every split into *table*.

        Returns
        -------
        int   Number of informative splits.
        """
        n_informative = 0
        for row in range(self.split_count()):
            if Bipartition(self, row).score(table, lineage_mask, query_mask):
                n_informative += 1
        return n_informative

    def describe(self, lineages: Sequence[str], queries: Sequence[str]) -> List[str]:
        return [split.to_string(lineages, queries) for split in self]

    def __len__(self) -> int:
        return self.split_count()

    def __getitem__(self, index: int) -> Bipartition:
        n = self.split_count()
        if index < 0:
            index += n
        if index < 0 or index >= n:
            raise IndexError(f"Split index out of range for {n} splits")
        return Bipartition(self, index)

    def __iter__(self) -> Iterator[Bipartition]:
        return (Bipartition(self, row) for row in range(self.split_count()))

    def __repr__(self) -> str:
        return f"BipartitionSet(n_tips={self.n_tips}, splits={self.split_count()})"

    # ------------------------------------------------------------------ #

    @staticmethod
    def _tree_split_words(left_child, right_child, synthetic, n_leaves, tip_index):
        """
        **Private static.**  Compute canonical, de-duplicated, non-trivial
        clade bit arrays for every real non-root internal node.

        Post-order node IDs guarantee both children of node v are < v, so a
        single increasing sweep fills every clade from its children.

        Dropped
        -------
        * synthetic nodes (polytomy resolution; not an input edge)
        * trivial splits (one tip on either side)
        * duplicates (the two root edges of a rooted tree are one edge)
        """
        n_nodes = left_child.shape[0]
        root = n_nodes - 1
        n_words = word_count(n_leaves)

        clades = np.zeros((n_nodes, n_words), dtype=np.uint32)
        for leaf in range(n_leaves):
            g = int(tip_index[leaf])
            clades[leaf, g // WORD_BITS] |= np.uint32(1 << (g % WORD_BITS))
        for v in range(n_leaves, n_nodes):
            clades[v] = clades[left_child[v]] | clades[right_child[v]]

        full = tail_mask(n_leaves)
        seen = set()
        rows = []
        for v in range(n_leaves, root):
            if synthetic[v]:
                continue
            clade = clades[v]
            if not (int(clade[0]) & 1):
                clade = ~clade & full
            size = popcount_words(clade)
            if size <= 1 or size >= n_leaves - 1:
                continue
            key = clade.tobytes()
            if key in seen:
                continue
            seen.add(key)
            rows.append(clade)

        if not rows:
            return np.zeros((0, n_words), dtype=np.uint32)
        return np.vstack(rows)
