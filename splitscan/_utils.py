"""
_utils.py
=========
Small standalone helpers that do not depend on the main classes.
"""


def format_newick(newick: str) -> str:
    """
    Format a NEWICK string for consistent representation.

    Ensures the NEWICK string has no leading/trailing whitespace and ends
    with a semicolon.

    Examples
    --------
    >>> format_newick('((A:1,B:1):1,(C:1,D:1):1)')
    '((A:1,B:1):1,(C:1,D:1):1);'

    >>> format_newick('  ((A:1,B:1):1);  ')
    '((A:1,B:1):1);'
    """
    newick = newick.strip()
    if not newick.endswith(';'):
        newick += ';'
    return newick


def format_bytes(n_bytes: int) -> str:
    """
    Human-readable size: KB below one megabyte, MB below one gigabyte,
    GB above.

    >>> format_bytes(2048)
    '2.0 KB'
    """
    if n_bytes >= 1024 ** 3:
        return f"{n_bytes / 1024 ** 3:.2f} GB"
    if n_bytes >= 1024 ** 2:
        return f"{n_bytes / 1024 ** 2:.1f} MB"
    return f"{n_bytes / 1024:.1f} KB"
