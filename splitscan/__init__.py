"""
splitscan
=========

Lineage/query co-occurrence counting over the bipartitions of a tree set.

For every tree, every internal edge splits the tips into two sides.  A split
whose one side holds exactly one lineage (all other lineages are on the
other side) credits that lineage with every query tip sharing its side.
Summed over the whole tree set this gives an L × Q table of match counts.

Main Classes
------------
BipartitionForest : Splits of a whole tree set, with bulk accumulation
BipartitionSet : Splits of one tree
Bipartition : One split, and the rule that scores it
TaxonRegistry : Sorted set of taxon labels with index lookup
MembershipMask : Bit mask over the global tip index space
AccumulationTable : Lineage × query counter matrix
TipNumbering : Label → global tip index mapping shared by a forest
Tree : NEWICK parser
RunConfig : YAML run configuration

Context Managers
----------------
quiet : Suppress splitscan logging
suppress_logger : Suppress a specific logger
use_backend : Force a specific computational backend

Examples
--------
>>> from splitscan import BipartitionForest, TaxonRegistry
>>> lineages = TaxonRegistry(['B', 'A'])
>>> queries = TaxonRegistry(['Q1'])
>>> forest = BipartitionForest.from_newick(['((A,Q1),(B,C));'], lineages, queries)
>>> table = forest.accumulate(lineages, queries)
>>> list(table.rows(lineages, queries))
[('A', 'Q1', 1), ('B', 'Q1', 0)]
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._accumulation import AccumulationTable
from ._config import RunConfig
from ._forest import BipartitionForest
from ._numbering import TipNumbering
from ._splits import Bipartition, BipartitionSet
from ._taxa import MembershipMask, TaxonRegistry
from ._tree import Tree

# Errors
from ._errors import (
    CounterOverflowError,
    IndexOutOfRange,
    InconsistentTipNumbering,
    LabelNotFound,
    RegistryNotSorted,
    SplitScanError,
)

# Context managers
from ._context import quiet, suppress_logger, use_backend

# I/O and utilities
from ._io import format_results_csv, read_treeset, write_results_csv
from ._utils import format_newick

# Backend information
from ._backend import get_available_backends, get_backend_info

__all__ = [
    # Main classes
    "AccumulationTable",
    "Bipartition",
    "BipartitionForest",
    "BipartitionSet",
    "MembershipMask",
    "RunConfig",
    "TaxonRegistry",
    "TipNumbering",
    "Tree",
    # Errors
    "CounterOverflowError",
    "IndexOutOfRange",
    "InconsistentTipNumbering",
    "LabelNotFound",
    "RegistryNotSorted",
    "SplitScanError",
    # Context managers
    "quiet",
    "suppress_logger",
    "use_backend",
    # I/O and utilities
    "format_newick",
    "format_results_csv",
    "read_treeset",
    "write_results_csv",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    # Version info
    "__version__",
]
