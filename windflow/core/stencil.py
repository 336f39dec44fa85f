"""
Index helpers for the (Nz, Ny, Nx) structured grid.

Component c (0 = x, 1 = y, 2 = z) runs along array axis AXIS[c]. Neighbour
slot 2*c holds the "+" neighbour along component c and slot 2*c + 1 the "-"
neighbour, i.e. the order is E, W, N, S, T, B.
"""

import numpy as np

AXIS = (2, 1, 0)

INNER = (slice(1, -1),) * 3

# Interior views of the six neighbours, in slot order E, W, N, S, T, B
NEIGHBOURS = (
    (slice(1, -1), slice(1, -1), slice(2, None)),
    (slice(1, -1), slice(1, -1), slice(None, -2)),
    (slice(1, -1), slice(2, None), slice(1, -1)),
    (slice(1, -1), slice(None, -2), slice(1, -1)),
    (slice(2, None), slice(1, -1), slice(1, -1)),
    (slice(None, -2), slice(1, -1), slice(1, -1)),
)


def shift(a, c, k):
    """Return b with b[idx] = a[idx + k along component c] (periodic wrap at the ends)."""
    return np.roll(a, -k, axis=AXIS[c])


def interior_mask(shape):
    mask = np.zeros(shape, dtype=bool)
    mask[INNER] = True
    return mask


def pad_to(a, shape):
    """Edge-pad a 3D array up to ``shape`` (pressure grid -> staggered velocity grid)."""
    return np.pad(a, [(0, s - n) for s, n in zip(shape, a.shape)], mode="edge")
