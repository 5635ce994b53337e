"""Hilbert curve ordering for the static spatial index.

Coordinates are quantised to 16 bits per axis and mapped to a 32-bit
position along the curve using the branch-free bit-interleaving transform,
so a whole coordinate array is encoded in a handful of numpy operations.
"""

from __future__ import annotations

import numpy as np

HILBERT_BITS = 16
HILBERT_MAX = (1 << HILBERT_BITS) - 1


def hilbert_values(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Return Hilbert curve positions for integer grid coordinates.

    Args:
        x: Grid x coordinates in ``[0, 65535]``
        y: Grid y coordinates in ``[0, 65535]``

    Returns:
        ``uint32`` array of curve positions, same shape as the inputs
    """
    x = np.asarray(x).astype(np.uint32)
    y = np.asarray(y).astype(np.uint32)

    a = x ^ y
    b = 0xFFFF ^ a
    c = 0xFFFF ^ (x | y)
    d = x & (y ^ 0xFFFF)

    A = a | (b >> 1)
    B = (a >> 1) ^ a
    C = ((c >> 1) ^ (b & (d >> 1))) ^ c
    D = ((a & (c >> 1)) ^ (d >> 1)) ^ d

    a, b, c, d = A, B, C, D
    A = (a & (a >> 2)) ^ (b & (b >> 2))
    B = (a & (b >> 2)) ^ (b & ((a ^ b) >> 2))
    C = C ^ ((a & (c >> 2)) ^ (b & (d >> 2)))
    D = D ^ ((b & (c >> 2)) ^ ((a ^ b) & (d >> 2)))

    a, b, c, d = A, B, C, D
    A = (a & (a >> 4)) ^ (b & (b >> 4))
    B = (a & (b >> 4)) ^ (b & ((a ^ b) >> 4))
    C = C ^ ((a & (c >> 4)) ^ (b & (d >> 4)))
    D = D ^ ((b & (c >> 4)) ^ ((a ^ b) & (d >> 4)))

    a, b, c, d = A, B, C, D
    C = C ^ ((a & (c >> 8)) ^ (b & (d >> 8)))
    D = D ^ ((b & (c >> 8)) ^ ((a ^ b) & (d >> 8)))

    a = C ^ (C >> 1)
    b = D ^ (D >> 1)

    i0 = x ^ y
    i1 = b | (0xFFFF ^ (i0 | a))

    return (_spread_bits(i1) << 1) | _spread_bits(i0)


def _spread_bits(v: np.ndarray) -> np.ndarray:
    """Interleave zero bits between the low 16 bits of ``v``."""
    v = (v | (v << 8)) & 0x00FF00FF
    v = (v | (v << 4)) & 0x0F0F0F0F
    v = (v | (v << 2)) & 0x33333333
    v = (v | (v << 1)) & 0x55555555
    return v


__all__ = ["HILBERT_BITS", "HILBERT_MAX", "hilbert_values"]
