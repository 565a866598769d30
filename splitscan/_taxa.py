"""
_taxa.py
========
Named taxon groups and the bit masks that mark them in the global tip
index space.

Public API
----------
  TaxonRegistry(labels)
      Ordered set of unique taxon labels.  Must be ``sort()``-ed before any
      index is derived from it; afterwards it is frozen.

  MembershipMask(n_bits)
      Fixed-length uint32 bit vector.  ``set_bits(start)`` marks the range
      ``[start, n_bits)``, which is how a group occupying the top of the
      mask is encoded.

Index ranges
------------
With L lineages and Q queries, the lineage registry owns global indices
``[0, L)`` and the query registry owns ``[L, L+Q)``.  The two masks used by
an accumulation pass are therefore

    lineages.make_mask(0)    →  L bits,     bits [0, L) set
    queries.make_mask(L)     →  L+Q bits,   bits [L, L+Q) set
"""

import bisect
from collections import Counter
from typing import Iterable, Iterator, Tuple

import numpy as np

from splitscan._bits import WORD_BITS, word_count
from splitscan._errors import IndexOutOfRange, LabelNotFound, RegistryNotSorted


class TaxonRegistry:
    """
    An ordered collection of unique taxon labels with binary-search lookup.

    Parameters
    ----------
    labels : iterable of str
        Labels in any order.  Duplicates raise ``ValueError``.

    Notes
    -----
    Every index handed out by ``find_label_index`` is baked into masks and
    split bitsets, so the order can only change once: ``sort()`` reorders
    the labels and freezes the registry.  Lookups before sorting raise
    ``RegistryNotSorted`` instead of returning a wrong index.
    """

    def __init__(self, labels: Iterable[str]) -> None:
        self._labels = [str(label) for label in labels]
        if len(set(self._labels)) != len(self._labels):
            dupes = sorted(k for k, n in Counter(self._labels).items() if n > 1)
            raise ValueError(f"Duplicate taxon labels: {dupes}")
        self._sorted = False

    # ------------------------------------------------------------------ #

    def sort(self) -> "TaxonRegistry":
        """Sort labels in place (idempotent) and freeze the order."""
        if not self._sorted:
            self._labels.sort()
            self._sorted = True
        return self

    @property
    def is_sorted(self) -> bool:
        return self._sorted

    def find_label_index(self, label: str) -> int:
        """
        Return the index of *label* in the sorted registry.

        Raises
        ------
        RegistryNotSorted   if ``sort()`` has not been called.
        LabelNotFound       if *label* is absent.
        """
        self._require_sorted("find_label_index")
        pos = bisect.bisect_left(self._labels, label)
        if pos == len(self._labels) or self._labels[pos] != label:
            raise LabelNotFound(label, len(self._labels))
        return pos

    def make_mask(self, offset: int) -> "MembershipMask":
        """
        Build a mask of ``offset + size()`` bits with this group's range
        ``[offset, offset + size())`` set.
        """
        self._require_sorted("make_mask")
        if offset < 0:
            raise IndexOutOfRange(f"Mask offset must be non-negative, got {offset}")
        mask = MembershipMask(offset + self.size())
        mask.set_bits(offset)
        return mask

    def size(self) -> int:
        return len(self._labels)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(self._labels)

    # ------------------------------------------------------------------ #

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def __getitem__(self, index: int) -> str:
        return self._labels[index]

    def __contains__(self, label) -> bool:
        if self._sorted:
            pos = bisect.bisect_left(self._labels, label)
            return pos < len(self._labels) and self._labels[pos] == label
        return label in self._labels

    def __eq__(self, other) -> bool:
        if not isinstance(other, TaxonRegistry):
            return NotImplemented
        return self._labels == other._labels

    def __repr__(self) -> str:
        state = "sorted" if self._sorted else "unsorted"
        return f"TaxonRegistry({self._labels!r}, {state})"

    def _require_sorted(self, operation: str) -> None:
        if not self._sorted:
            raise RegistryNotSorted(
                f"TaxonRegistry.{operation}() requires a sorted registry; "
                f"call sort() first."
            )


class MembershipMask:
    """
    A fixed-length bit vector over the global tip index space.

    Attributes (read-only)
    ----------------------
    words : uint32 [size_in_elements()]   Backing words (read-only view).
    """

    def __init__(self, n_bits: int) -> None:
        if n_bits < 0:
            raise ValueError(f"n_bits must be non-negative, got {n_bits}")
        self._n_bits = int(n_bits)
        self._words = np.zeros(word_count(n_bits), dtype=np.uint32)

    def set_bits(self, start: int) -> None:
        """Set every bit in ``[start, size_in_bits())``."""
        if start < 0 or start > self._n_bits:
            raise IndexOutOfRange(
                f"set_bits start {start} outside mask of {self._n_bits} bits"
            )
        for i in range(start, self._n_bits):
            self._words[i // WORD_BITS] |= np.uint32(1 << (i % WORD_BITS))

    def extract_tip_state(self, index: int) -> int:
        if index < 0 or index >= self._n_bits:
            raise IndexOutOfRange(
                f"Bit {index} outside mask of {self._n_bits} bits"
            )
        return (int(self._words[index // WORD_BITS]) >> (index % WORD_BITS)) & 1

    def size_in_bits(self) -> int:
        return self._n_bits

    def size_in_elements(self) -> int:
        return int(self._words.shape[0])

    @property
    def words(self) -> np.ndarray:
        view = self._words.view()
        view.flags.writeable = False
        return view

    def __getitem__(self, index: int) -> int:
        return int(self._words[index])

    def __iter__(self) -> Iterator[int]:
        return (int(w) for w in self._words)

    def __len__(self) -> int:
        return self.size_in_elements()

    def __repr__(self) -> str:
        bits = "".join(str(self.extract_tip_state(i)) for i in range(self._n_bits))
        return f"MembershipMask({bits!r})"
