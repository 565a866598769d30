"""
_logging.py
===========
Logging functions for splitscan.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages, so computation
stays separate from presentation and tests can silence or capture output
without touching the algorithms.
"""

import logging
import os
import platform
import warnings
from typing import Any, List, Sequence

from splitscan._utils import format_bytes

logger = logging.getLogger(__name__)


# ============================================================================ #
# System and Backend Logging (called at module import time)
# ============================================================================ #


def log_optimization_status() -> None:
    """
    Log system capabilities and numba configuration at INFO level.

    Called once at import time of the forest module.
    """
    import numba

    cpu_count = os.cpu_count() or 1
    logger.info(
        f"System: {platform.machine()} ({platform.system()}), "
        f"{cpu_count} CPU cores, Python {platform.python_version()}"
    )
    logger.info(f"Numba {numba.__version__} loaded successfully")
    logger.info(
        f"Numba threading: {numba.config.THREADING_LAYER} layer, "
        f"{numba.get_num_threads()} threads active"
    )


def install_numba_warning_filter() -> None:
    """
    Route NumbaPerformanceWarning through our logger at WARNING level so it
    appears in the same stream as other splitscan diagnostics.  Other
    warnings keep their default handling.
    """
    from numba.core.errors import NumbaPerformanceWarning

    original_showwarning = warnings.showwarning

    def custom_showwarning(message, category, filename, lineno, file=None, line=None):
        if issubclass(category, NumbaPerformanceWarning):
            logger.warning(f"Numba performance issue: {message}")
            logger.warning(f"  at {filename}:{lineno}")
            return
        original_showwarning(message, category, filename, lineno, file, line)

    warnings.showwarning = custom_showwarning


def log_backend_availability(backends_available: List[str]) -> None:
    """
    Log which execution backends are available for split accumulation.

    Parameters
    ----------
    backends_available : List[str]
        Available backends in preference order (last is best).
    """
    logger.info(f"Available backends: {', '.join(backends_available)}")
    if "cpu-parallel" in backends_available:
        logger.info("  cpu-parallel: LLVM-compiled parallel code (numba.njit + prange)")
    if "python" in backends_available:
        logger.info("  python: unoptimized reference implementation")
    logger.info(f"Default backend='best' will use: {backends_available[-1]}")


# ============================================================================ #
# Forest Logging (called during construction)
# ============================================================================ #


def log_polytomy_warning(
    n_polytomous: int, polytomous_indices: List[int], n_trees: int
) -> None:
    """
    Emit one consolidated warning for all trees that contained polytomies.

    Parameters
    ----------
    n_polytomous : int
        Number of trees that needed polytomy resolution.
    polytomous_indices : List[int]
        Indices of those trees.
    n_trees : int
        Total number of trees in the forest.
    """
    if n_polytomous == 0:
        return
    if n_polytomous == 1:
        logger.warning(
            "1 tree contained polytomies (tree index %d). "
            "Only its input edges contribute splits.",
            polytomous_indices[0],
        )
    elif n_polytomous <= 5:
        logger.warning(
            "%d trees contained polytomies (tree indices: %s). "
            "Only their input edges contribute splits.",
            n_polytomous,
            ", ".join(map(str, polytomous_indices)),
        )
    else:
        logger.warning(
            "%d trees contained polytomies (%.1f%% of total). "
            "Only their input edges contribute splits.",
            n_polytomous,
            100.0 * n_polytomous / n_trees,
        )


def log_forest_statistics(
    n_trees: int,
    n_tips: int,
    n_words: int,
    total_splits: int,
    min_splits: int,
    max_splits: int,
    memory_bytes: int,
) -> None:
    """
    Log forest statistics: tree and tip counts, split counts, memory.

    Parameters
    ----------
    n_trees : int
    n_tips : int
        Tips per tree (identical across the forest).
    n_words : int
        uint32 words per split.
    total_splits : int
        Sum of per-tree split counts.
    min_splits, max_splits : int
        Smallest and largest per-tree split count.
    memory_bytes : int
        Footprint of the packed split buffers.
    """
    logger.info(
        "Forest built: %d trees, %d tips, %d word(s) per split",
        n_trees,
        n_tips,
        n_words,
    )
    logger.info(
        "Splits: %d total, %d-%d per tree (a binary tree has %d)",
        total_splits,
        min_splits,
        max_splits,
        max(n_tips - 3, 0),
    )
    logger.info("Total memory footprint: %s", format_bytes(memory_bytes))


def compute_memory_footprint(forest: Any) -> int:
    """
    Total bytes held by the forest's packed split buffers.

    Parameters
    ----------
    forest : BipartitionForest
    """
    return int(forest.all_splits.nbytes + forest.split_offsets.nbytes)


# ============================================================================ #
# Accumulation Logging
# ============================================================================ #


def log_accumulation_summary(
    backend: str, n_trees: int, n_informative: int, total_matches: int
) -> None:
    """
    Log the outcome of one accumulation pass.

    Parameters
    ----------
    backend : str
        Backend that ran the pass.
    n_trees : int
    n_informative : int
        Number of splits that isolated exactly one lineage.
    total_matches : int
        Sum over the whole table.
    """
    logger.info(
        "Accumulated %d tree(s) with backend=%r: %d informative split(s), "
        "%d total match(es)",
        n_trees,
        backend,
        n_informative,
        total_matches,
    )


def log_split_listing(tree_index: int, descriptions: Sequence[str]) -> None:
    """Log the splits of one tree at DEBUG level, one line per split."""
    logger.debug("Tree %d: %d split(s)", tree_index, len(descriptions))
    for text in descriptions:
        logger.debug("  %s", text)
