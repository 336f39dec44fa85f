"""
Vectorised numpy execution backend.

Every kernel reads only the "previous" buffer and writes only the "current"
buffer, so a sweep is a pure function of the previous generation.
"""

import numpy as np

from ...core.stencil import INNER, NEIGHBOURS

RESIDUAL_BLOCK = 8


class NumpyBackend:
    """Single-threaded array backend."""

    name = "numpy"

    def momentum_sweep(self, out, prev, a_nb, D, b, active):
        """
        One Jacobi sweep of D*u = sum(a_nb*u_nb) + b for every velocity component.

        Parameters:
        -----------
        out, prev : ndarray
            (3, Nz, Ny, Nx) current and previous-iteration velocity
        a_nb : ndarray
            (3, 6, Nz, Ny, Nx) neighbour coefficients in E, W, N, S, T, B order
        D, b : ndarray
            (3, Nz, Ny, Nx) diagonal and source
        active : ndarray
            (3, Nz, Ny, Nx) bool, degrees of freedom updated by the sweep
        """
        for c in range(prev.shape[0]):
            acc = b[c][INNER].copy()
            for k, nb in enumerate(NEIGHBOURS):
                acc += a_nb[c, k][INNER] * prev[c][nb]
            out[c][INNER] = np.where(active[c][INNER], acc / D[c][INNER], prev[c][INNER])

    def pressure_sweep(self, out, prev, a_nb, a_p, b, active, omega):
        """One weighted Jacobi sweep of a_p*p' = sum(a_nb*p'_nb) + b."""
        acc = b[INNER].copy()
        for k, nb in enumerate(NEIGHBOURS):
            acc += a_nb[k][INNER] * prev[nb]
        relaxed = (1.0 - omega) * prev[INNER] + omega * acc / a_p[INNER]
        out[INNER] = np.where(active[INNER], relaxed, prev[INNER])

    def residual_block_sums(self, cur, prev, D, active):
        """Partial sums of (D*(cur - prev))**2 over 8x8x8 blocks of active degrees of freedom."""
        sq = np.where(active, (D * (cur - prev)) ** 2, 0.0).sum(axis=0)
        sq = np.pad(sq, [(0, (-n) % RESIDUAL_BLOCK) for n in sq.shape])
        nz, ny, nx = sq.shape
        B = RESIDUAL_BLOCK
        return sq.reshape(nz // B, B, ny // B, B, nx // B, B).sum(axis=(1, 3, 5))
