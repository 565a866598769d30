"""
_errors.py
==========
Exception types raised by splitscan.

Every error derives from ``SplitScanError`` and from the builtin exception
a caller would naturally catch for the same condition (``KeyError`` for a
failed lookup, ``IndexError`` for an out-of-range access, and so on), so
existing ``except KeyError`` style handlers keep working.

Any of these raised during ``BipartitionForest.accumulate`` aborts the
whole pass; no partially filled table is ever returned.
"""


class SplitScanError(Exception):
    """Base class for all splitscan errors."""


class LabelNotFound(SplitScanError, KeyError):
    """A label lookup against a sorted TaxonRegistry found no match."""

    def __init__(self, label: str, registry_size: int = 0) -> None:
        self.label = label
        super().__init__(
            f"Label '{label}' not found in registry of {registry_size} taxa."
        )

    def __str__(self) -> str:
        # KeyError.__str__ quotes its argument; keep the message readable.
        return self.args[0]


class RegistryNotSorted(SplitScanError, RuntimeError):
    """An index-dependent operation was attempted before ``sort()``."""


class IndexOutOfRange(SplitScanError, IndexError):
    """A table, mask or bipartition access fell outside allocated bounds."""


class InconsistentTipNumbering(SplitScanError, ValueError):
    """A tree's tip set cannot be mapped onto the canonical numbering."""


class CounterOverflowError(SplitScanError, OverflowError):
    """An accumulation counter would exceed its fixed width."""
