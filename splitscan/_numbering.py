"""
_numbering.py
=============
Forest-wide tip numbering.

Every bit index in every split is a *global* tip index, so the mapping from
taxon label to index must be identical in every tree.  It is established
once from a reference tree (the first tree of the forest) and then applied
to each tree by label.

Global tip index space
----------------------
With L lineages and Q queries (both registries sorted):

  [0, L)        lineage i    → i          (position in sorted registry)
  [L, L+Q)      query j      → L + j
  [L+Q, N)      other taxa   → L + Q + k  (k = order of appearance among
                                           the reference tree's leaves)
"""

import logging
from typing import Iterable, List

import numpy as np

from splitscan._errors import (
    InconsistentTipNumbering,
    LabelNotFound,
    RegistryNotSorted,
)
from splitscan._taxa import TaxonRegistry

logger = logging.getLogger(__name__)


class TipNumbering:
    """
    Label → global tip index assignment shared by every tree of a forest.

    Parameters
    ----------
    reference_labels : iterable of str
        Leaf labels of the reference tree, in local leaf-ID order.
    lineages, queries : TaxonRegistry
        Sorted registries.  Every label of both must occur among the
        reference labels, and the two registries must be disjoint.

    Raises
    ------
    RegistryNotSorted          if either registry is unsorted.
    ValueError                 if a label is both a lineage and a query.
    InconsistentTipNumbering   if a registry label is absent from the
                               reference tree.
    """

    def __init__(
        self,
        reference_labels: Iterable[str],
        lineages: TaxonRegistry,
        queries: TaxonRegistry,
    ) -> None:
        reference_labels = list(reference_labels)

        for registry in (lineages, queries):
            if not registry.is_sorted:
                raise RegistryNotSorted(
                    "TipNumbering requires sorted registries; call sort() first."
                )

        overlap = sorted(set(lineages) & set(queries))
        if overlap:
            raise ValueError(
                f"Taxa listed as both lineages and queries: {overlap}"
            )

        self.n_lineages: int = lineages.size()
        self.n_queries: int = queries.size()
        self.lineage_labels = lineages.labels
        self.query_labels = queries.labels

        query_offset = self.n_lineages
        other_offset = self.n_lineages + self.n_queries

        index_of = {}
        n_other = 0
        for label in reference_labels:
            try:
                index_of[label] = lineages.find_label_index(label)
                continue
            except LabelNotFound:
                pass
            try:
                index_of[label] = queries.find_label_index(label) + query_offset
                continue
            except LabelNotFound:
                pass
            index_of[label] = other_offset + n_other
            n_other += 1

        missing = [x for x in list(lineages) + list(queries) if x not in index_of]
        if missing:
            raise InconsistentTipNumbering(
                f"{len(missing)} lineage/query label(s) not present in the "
                f"reference tree: {missing}"
            )

        self.n_tips: int = len(index_of)
        self._index_of = index_of
        self._labels: List[str] = [""] * self.n_tips
        for label, idx in index_of.items():
            self._labels[idx] = label

        logger.info(
            "Tip numbering: %d lineages, %d queries, %d other taxa",
            self.n_lineages,
            self.n_queries,
            n_other,
        )

    # ------------------------------------------------------------------ #

    @property
    def labels(self) -> List[str]:
        """Labels in global index order."""
        return list(self._labels)

    def index_of(self, label: str) -> int:
        if label not in self._index_of:
            raise InconsistentTipNumbering(
                f"Taxon '{label}' is not part of the canonical tip numbering."
            )
        return self._index_of[label]

    def label_of(self, index: int) -> str:
        return self._labels[index]

    def tip_indices(self, tree) -> np.ndarray:
        """
        Map every leaf of *tree* to its global index.

        Returns
        -------
        np.ndarray[int32, shape=(tree.n_leaves,)]
            ``result[local_leaf_id] = global_index``.

        Raises
        ------
        InconsistentTipNumbering   if the tree's tip set differs from the
                                   reference tree's.
        """
        names = tree.leaf_names()
        extra = [x for x in names if x not in self._index_of]
        if extra or len(names) != self.n_tips:
            present = set(names)
            missing = [x for x in self._labels if x not in present]
            raise InconsistentTipNumbering(
                f"Tree tip set does not match the reference tree "
                f"(missing: {missing}, unexpected: {extra})"
            )
        return np.array([self._index_of[x] for x in names], dtype=np.int32)

    def matches(self, lineages: TaxonRegistry, queries: TaxonRegistry) -> bool:
        """True if the registries are exactly the ones this numbering used."""
        return (
            tuple(lineages) == self.lineage_labels
            and tuple(queries) == self.query_labels
        )

    def __repr__(self) -> str:
        return (
            f"TipNumbering(n_tips={self.n_tips}, n_lineages={self.n_lineages}, "
            f"n_queries={self.n_queries})"
        )
