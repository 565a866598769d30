"""
_context.py
===========
Context managers for temporarily changing splitscan state:

- Logging control (suppress/change levels)
- Backend selection (force a specific backend)

All context managers restore state on exit, even if exceptions occur.
"""

import logging
from contextlib import contextmanager
from typing import Optional

# Module-level state for backend override
_backend_override = None


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Temporarily change a logger's level.

    Parameters
    ----------
    logger_name : str
        Name of the logger to suppress (e.g. 'splitscan._tree').
    level : int, default logging.CRITICAL
        Temporary logging level.

    Examples
    --------
    >>> with suppress_logger('splitscan._tree'):
    ...     trees = [Tree(nwk) for nwk in newicks]

    Notes
    -----
    Nesting-safe and exception-safe: the original level is restored on exit.
    """
    logger = logging.getLogger(logger_name)
    original_level = logger.level

    try:
        logger.setLevel(level)
        yield
    finally:
        logger.setLevel(original_level)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Temporarily suppress all splitscan logging.

    Sets the level of the package logger ``'splitscan'``; module loggers
    that have no level of their own inherit it.

    Examples
    --------
    >>> with quiet():
    ...     forest = BipartitionForest.from_newick(trees, lineages, queries)

    >>> with quiet(logging.WARNING):
    ...     table = forest.accumulate(lineages, queries)
    """
    with suppress_logger("splitscan", level):
        yield


@contextmanager
def use_backend(backend: str):
    """
    Temporarily force a specific backend for accumulation.

    Parameters
    ----------
    backend : str
        'python', 'cpu-parallel' or 'best'.

    Raises
    ------
    ValueError
        If the requested backend is not available.  Checked on entry.

    Examples
    --------
    >>> with use_backend('python'):
    ...     table = forest.accumulate(lineages, queries)

    Notes
    -----
    **Not thread-safe**: uses module-level state.  Pass ``backend=`` to
    ``BipartitionForest.accumulate()`` directly when threads are involved.
    """
    global _backend_override

    from ._backend import get_available_backends

    available = get_available_backends()
    if backend != "best" and backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )

    original_override = _backend_override
    try:
        _backend_override = backend
        yield
    finally:
        _backend_override = original_override


def get_backend_override() -> Optional[str]:
    """
    Return the backend forced by an active ``use_backend`` block, or None.
    """
    return _backend_override
