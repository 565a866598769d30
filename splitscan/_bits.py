"""
_bits.py
========
Word-level bit utilities shared by MembershipMask and Bipartition.

All bit arrays in splitscan are numpy ``uint32`` word arrays.  Bit *i*
lives in word ``i // 32`` at offset ``i % 32``; trailing bits of the last
word beyond the logical length are always clear.

These are plain-Python reference versions.  The compiled kernels in
``_cpu_kernels.py`` carry their own ``@njit`` copies because numba cannot
call into interpreted functions.
"""

import numpy as np

WORD_BITS = 32
WORD_MASK = 0xFFFFFFFF


def word_count(n_bits: int) -> int:
    """
    Return the number of 32-bit words needed to hold *n_bits* bits.

    >>> word_count(0), word_count(1), word_count(32), word_count(33)
    (0, 1, 1, 2)
    """
    if n_bits < 0:
        raise ValueError(f"n_bits must be non-negative, got {n_bits}")
    return (n_bits + WORD_BITS - 1) // WORD_BITS


def popcount32(x: int) -> int:
    """Number of set bits in the low 32 bits of *x*."""
    return bin(int(x) & WORD_MASK).count("1")


def find_first_set(x: int) -> int:
    """
    Index of the lowest set bit of the 32-bit word *x*.

    Raises
    ------
    ValueError   if *x* has no set bit (the result would be undefined).
    """
    v = int(x) & WORD_MASK
    if v == 0:
        raise ValueError("find_first_set() of a zero word is undefined")
    return (v & -v).bit_length() - 1


def popcount_words(words: np.ndarray) -> int:
    """Total number of set bits in a uint32 word array."""
    words = np.ascontiguousarray(words, dtype=np.uint32)
    return int(np.unpackbits(words.view(np.uint8)).sum())


def extract_bit(words: np.ndarray, index: int) -> int:
    """Return bit *index* (0 or 1) of the word array *words*."""
    return (int(words[index // WORD_BITS]) >> (index % WORD_BITS)) & 1


def set_bit(words: np.ndarray, index: int) -> None:
    """Set bit *index* of the word array *words* in place."""
    words[index // WORD_BITS] |= np.uint32(1 << (index % WORD_BITS))


def tail_mask(n_bits: int) -> np.ndarray:
    """
    Word array of length ``word_count(n_bits)`` with bits ``[0, n_bits)``
    set.  Used to complement a bit array without setting padding bits.
    """
    words = np.full(word_count(n_bits), WORD_MASK, dtype=np.uint32)
    rem = n_bits % WORD_BITS
    if rem:
        words[-1] = np.uint32((1 << rem) - 1)
    return words
