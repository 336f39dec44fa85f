"""
Normalized L2 residual of one relaxation iteration.

The per-DOF residual is the diagonal coefficient times the change between the
current and previous iterate; the sum of squares is reduced from block partial
sums and normalised by the component count and the grid volume.
"""

import math

import numpy as np

from ..core.stencil import INNER, NEIGHBOURS


def normalized_residual(backend, cur, prev, D, active, n_cells):
    """
    Compute the normalized L2 residual.

    Parameters:
    -----------
    backend : NumpyBackend
        Execution backend providing the block partial sums
    cur, prev : ndarray
        (ncomp, Nz, Ny, Nx) current and previous iterate
    D : ndarray
        Diagonal coefficients, same shape as ``cur``
    active : ndarray
        Boolean mask of the degrees of freedom that are relaxed
    n_cells : int
        Nx*Ny*Nz

    Returns:
    --------
    float
        sqrt(sum(r**2) / (ncomp * n_cells)), NaN/Inf when the iterate diverged
    """
    sums = backend.residual_block_sums(cur, prev, D, active)
    return math.sqrt(float(np.sum(sums)) / (cur.shape[0] * n_cells))


def velocity_residual(backend, fields):
    """Residual between the newest (``vel_iter``) and older (``vel``) velocity iterate."""
    return normalized_residual(backend, fields.vel_iter, fields.vel, fields.mom_D,
                               fields.vel_active, fields.grid.n_cells)


def pressure_residual(backend, fields):
    """Residual between the newest (``pc_iter``) and older (``pc``) pressure-correction iterate."""
    return normalized_residual(backend, fields.pc_iter[np.newaxis], fields.pc[np.newaxis],
                               fields.pc_a_p[np.newaxis], fields.p_active[np.newaxis],
                               fields.grid.n_cells)


def pressure_equation_imbalance(fields, pc):
    """
    Largest |a'_P*p'_P - sum(a'_nb*p'_nb) - b'| over fluid interior cells.

    Correcting the face fluxes with ``pc`` leaves exactly this net outflow in
    each cell, so it bounds the continuity error of the corrected step.
    """
    acc = fields.pc_a_p[INNER] * pc[INNER] - fields.pc_b[INNER]
    for k, nb in enumerate(NEIGHBOURS):
        acc -= fields.pc_a_nb[k][INNER] * pc[nb]
    imbalance = np.abs(acc[fields.p_active[INNER]])
    return float(imbalance.max()) if imbalance.size else 0.0
