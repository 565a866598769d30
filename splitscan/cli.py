"""
Command-line entry point for splitscan.

    splitscan --treeset trees.nwk --config run.yaml [--output out.csv]

Reads a tree set (one NEWICK tree per line) and a YAML run configuration,
counts for every (lineage, query) pair the splits that isolate the lineage
together with the query, and writes the table as CSV.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from splitscan import __version__
from splitscan._config import RunConfig
from splitscan._context import suppress_logger
from splitscan._errors import SplitScanError
from splitscan._forest import BipartitionForest
from splitscan._io import read_treeset, write_results_csv
from splitscan._numbering import TipNumbering
from splitscan._tree import Tree

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="splitscan",
    help="Count lineage/query co-occurrence across the splits of a tree set",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


class Backend(str, Enum):
    """Execution backends selectable from the command line."""

    BEST = "best"
    PYTHON = "python"
    CPU_PARALLEL = "cpu-parallel"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"splitscan version {__version__}")
        raise typer.Exit


@app.command()
def run(
    treeset: Path = typer.Option(
        ...,
        "--treeset",
        "-t",
        help="Tree set file, one NEWICK tree per line",
        exists=True,
        dir_okay=False,
    ),
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="YAML file with 'lineages', 'queries' and 'options'",
        exists=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Results CSV (overrides options.output)",
    ),
    backend: Optional[Backend] = typer.Option(
        None,
        "--backend",
        "-b",
        help="Execution backend (overrides options.backend)",
    ),
    show_splits: bool = typer.Option(
        False,
        "--show-splits",
        help="Log every split of every tree",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log warnings and errors",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Accumulate lineage/query matches over every tree of a tree set.

    Examples:

        splitscan --treeset trees.nwk --config run.yaml

        splitscan -t trees.nwk -c run.yaml -o matches.csv --backend python
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(format="%(levelname)s: %(message)s")

    try:
        with suppress_logger("splitscan", level):
            out_path = _run(treeset, config, output, backend, show_splits)
    except (SplitScanError, ValueError, OSError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if not quiet:
        console.print(f"[green]Results written to[/green] {escape(str(out_path))}")


def _run(
    treeset: Path,
    config: Path,
    output: Optional[Path],
    backend: Optional[Backend],
    show_splits: bool,
) -> Path:
    """Run the pipeline and return the path of the written CSV."""
    logger.info("Parsing trees")
    newick_strings = read_treeset(treeset)
    with suppress_logger("splitscan._tree"):
        trees = [Tree(nwk) for nwk in newick_strings]

    run_config = RunConfig.from_yaml(config)
    out_path = output if output is not None else run_config.output
    if out_path is None:
        raise ValueError(
            "No output file: pass --output or set options.output in the config"
        )
    backend_name = backend.value if backend is not None else run_config.backend

    lineages, queries = run_config.registries()

    logger.info("Sorting taxa lists")
    lineages.sort()
    queries.sort()

    logger.info("Normalizing trees")
    numbering = TipNumbering(trees[0].leaf_names(), lineages, queries)

    logger.info("Making splits")
    forest = BipartitionForest(trees, numbering)
    if show_splits:
        with suppress_logger("splitscan._logging", logging.DEBUG):
            forest.log_splits(lineages, queries)

    logger.info("Accumulating matches")
    table = forest.accumulate(lineages, queries, backend=backend_name)

    logger.info("Total Splits: %d", forest.total_splits())

    write_results_csv(table, lineages, queries, out_path)
    return out_path


if __name__ == "__main__":
    app()
