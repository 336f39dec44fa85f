"""
Parallel CPU backend.

Only the per-iteration hot loops are compiled; once-per-step assembly is
shared with the numpy backend so both produce the same discretization.
"""

import numpy as np
from numba import njit, prange

from .numpy_backend import NumpyBackend, RESIDUAL_BLOCK


@njit(parallel=True)
def _momentum_sweep(out, prev, a_nb, D, b, active):
    ncomp, nz, ny, nx = prev.shape
    for c in range(ncomp):
        for k in prange(1, nz - 1):
            for j in range(1, ny - 1):
                for i in range(1, nx - 1):
                    if active[c, k, j, i]:
                        acc = (b[c, k, j, i]
                               + a_nb[c, 0, k, j, i] * prev[c, k, j, i + 1]
                               + a_nb[c, 1, k, j, i] * prev[c, k, j, i - 1]
                               + a_nb[c, 2, k, j, i] * prev[c, k, j + 1, i]
                               + a_nb[c, 3, k, j, i] * prev[c, k, j - 1, i]
                               + a_nb[c, 4, k, j, i] * prev[c, k + 1, j, i]
                               + a_nb[c, 5, k, j, i] * prev[c, k - 1, j, i])
                        out[c, k, j, i] = acc / D[c, k, j, i]
                    else:
                        out[c, k, j, i] = prev[c, k, j, i]


@njit(parallel=True)
def _pressure_sweep(out, prev, a_nb, a_p, b, active, omega):
    nz, ny, nx = prev.shape
    for k in prange(1, nz - 1):
        for j in range(1, ny - 1):
            for i in range(1, nx - 1):
                if active[k, j, i]:
                    acc = (b[k, j, i]
                           + a_nb[0, k, j, i] * prev[k, j, i + 1]
                           + a_nb[1, k, j, i] * prev[k, j, i - 1]
                           + a_nb[2, k, j, i] * prev[k, j + 1, i]
                           + a_nb[3, k, j, i] * prev[k, j - 1, i]
                           + a_nb[4, k, j, i] * prev[k + 1, j, i]
                           + a_nb[5, k, j, i] * prev[k - 1, j, i])
                    out[k, j, i] = (1.0 - omega) * prev[k, j, i] + omega * acc / a_p[k, j, i]
                else:
                    out[k, j, i] = prev[k, j, i]


@njit(parallel=True)
def _residual_block_sums(cur, prev, D, active, block):
    ncomp, nz, ny, nx = cur.shape
    nbz = (nz + block - 1) // block
    nby = (ny + block - 1) // block
    nbx = (nx + block - 1) // block
    out = np.zeros((nbz, nby, nbx))
    for n in prange(nbz * nby * nbx):
        bz = n // (nby * nbx)
        by = (n % (nby * nbx)) // nbx
        bx = n % nbx
        acc = 0.0
        for c in range(ncomp):
            for k in range(bz * block, min((bz + 1) * block, nz)):
                for j in range(by * block, min((by + 1) * block, ny)):
                    for i in range(bx * block, min((bx + 1) * block, nx)):
                        if active[c, k, j, i]:
                            r = D[c, k, j, i] * (cur[c, k, j, i] - prev[c, k, j, i])
                            acc += r * r
        out[bz, by, bx] = acc
    return out


class NumbaBackend(NumpyBackend):
    """Thread-parallel backend, prange over the z axis."""

    name = "numba"

    def momentum_sweep(self, out, prev, a_nb, D, b, active):
        _momentum_sweep(out, prev, a_nb, D, b, active)

    def pressure_sweep(self, out, prev, a_nb, a_p, b, active, omega):
        _pressure_sweep(out, prev, a_nb, a_p, b, active, float(omega))

    def residual_block_sums(self, cur, prev, D, active):
        return _residual_block_sums(cur, prev, D, active, RESIDUAL_BLOCK)
