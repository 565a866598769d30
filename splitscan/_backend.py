"""
_backend.py
===========
Backend listing and selection for split accumulation.

Two execution backends exist:

  python        Pure-Python reference implementation.
  cpu-parallel  numba-compiled kernel with a prange loop over tree chunks.

numba is a required dependency, so both are always available.

Functions in this module have NO side effects - they only query system state.
Logging is done by the calling code, not here.
"""

from typing import List

import numba

BACKENDS = ("python", "cpu-parallel")


def get_available_backends() -> List[str]:
    """
    Get list of available execution backends.

    Returns
    -------
    list[str]
        Backends in preference order (last is best).

    Examples
    --------
    >>> get_available_backends()
    ['python', 'cpu-parallel']
    """
    return list(BACKENDS)


def get_best_backend() -> str:
    """Get the most optimized available backend."""
    return get_available_backends()[-1]


def resolve_backend(backend: str) -> str:
    """
    Resolve a backend specification to an actual backend.

    Parameters
    ----------
    backend : str
        'best', 'python' or 'cpu-parallel'.

    Returns
    -------
    str
        Resolved backend name.

    Raises
    ------
    ValueError
        If the requested backend is unknown.
    """
    if backend == "best":
        return get_best_backend()

    available = get_available_backends()
    if backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )
    return backend


def get_backend_info() -> dict:
    """
    Get backend information.

    Returns
    -------
    dict
        Keys 'numba_version', 'num_threads', 'backends' and 'best_backend'.
    """
    return {
        "numba_version": numba.__version__,
        "num_threads": numba.get_num_threads(),
        "backends": get_available_backends(),
        "best_backend": get_best_backend(),
    }
