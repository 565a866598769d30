"""
_io.py
======
Reading tree sets and writing match tables.

Tree set format
---------------
Plain text, one NEWICK tree per line.  Blank lines are ignored; each tree
is normalized with ``format_newick``.

Results format
--------------
CSV with header ``lineage,query,matches`` and one row per (lineage, query)
pair, lineage-major in sorted label order.  Fields are separated by a
single comma with no padding space (not ", ").
"""

import csv
import io
import logging
from pathlib import Path
from typing import List, Sequence, Union

from splitscan._accumulation import AccumulationTable
from splitscan._utils import format_newick

logger = logging.getLogger(__name__)

RESULTS_HEADER = ("lineage", "query", "matches")


def read_treeset(path: Union[str, Path]) -> List[str]:
    """
    Read one NEWICK string per non-blank line of *path*.

    Raises
    ------
    OSError      if the file cannot be read.
    ValueError   if it contains no trees.
    """
    path = Path(path)
    with path.open() as fh:
        trees = [format_newick(line) for line in fh if line.strip()]
    if not trees:
        raise ValueError(f"No trees found in {path}")
    logger.info("Read %d tree(s) from %s", len(trees), path)
    return trees


def _write_rows(fh, table: AccumulationTable, lineages, queries) -> None:
    writer = csv.writer(fh, lineterminator="\n")
    writer.writerow(RESULTS_HEADER)
    for row in table.rows(lineages, queries):
        writer.writerow(row)


def format_results_csv(
    table: AccumulationTable, lineages: Sequence[str], queries: Sequence[str]
) -> str:
    """Return the results CSV as a string."""
    buf = io.StringIO()
    _write_rows(buf, table, list(lineages), list(queries))
    return buf.getvalue()


def write_results_csv(
    table: AccumulationTable,
    lineages: Sequence[str],
    queries: Sequence[str],
    path: Union[str, Path],
) -> None:
    """
    Write the results CSV to *path*, replacing any existing file.

    *lineages* and *queries* are the sorted label sequences the table was
    accumulated against.
    """
    path = Path(path)
    with path.open("w", newline="") as fh:
        _write_rows(fh, table, list(lineages), list(queries))
    logger.info(
        "Wrote %d row(s) to %s", table.n_lineages * table.n_queries, path
    )
