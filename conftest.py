"""
conftest.py
===========
Session-level pytest configuration.

Custom marks
------------
slow
    Tests that compile numba kernels for large random forests.  Registered
    here so ``-m "not slow"`` can skip them without a
    PytestUnknownMarkWarning.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  With the
tiny forests used here the parallel kernel often has less work than
threads, and numba says so; that is not a correctness signal.
"""

import warnings

from numba.core.errors import NumbaPerformanceWarning


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    Runs before any test module is imported, so the filter is in place
    before the kernels are compiled.
    """
    config.addinivalue_line(
        "markers",
        "slow: compiles kernels for large random forests (deselect with -m 'not slow')",
    )
    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behavior."""
    warnings.resetwarnings()
