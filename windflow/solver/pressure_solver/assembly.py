"""
Pressure-correction coefficient assembly.

a'_f = dx * d_f with d = dv/(rho*D) of the momentum equation, zero on faces
touching a solid and on boundary faces whose velocity is not zero-gradient.
b' = -sum(F*_out). The face conductances are stored in ``pc_a_face`` (on the
face layout of the grid arrangement) and scattered to ``pc_a_nb`` (6, ...).
"""

import numpy as np

from ...constructor.boundary_conditions import BoundaryLocation, BoundaryType
from ...core.stencil import shift
from ..face_interpolation import flux_divergence, staggered_flux_divergence

_LOW = (BoundaryLocation.X0, BoundaryLocation.Y0, BoundaryLocation.Z0)
_HIGH = (BoundaryLocation.XN, BoundaryLocation.YN, BoundaryLocation.ZN)


def _open(bc_manager, location):
    return bc_manager.velocity_type(location) == BoundaryType.ZERO_GRADIENT


def _face_conductances_collocated(fields, grid, bc_manager):
    d = grid.dv / (grid.density * fields.mom_D[0])
    for c in range(3):
        d_next = shift(d, c, 1)
        a = np.where(fields.face_interior[c], grid.dx * 0.5 * (d + d_next), 0.0)
        if _open(bc_manager, _LOW[c]):
            a = np.where(fields.face_bnd_lo[c], grid.dx * d_next, a)
        if _open(bc_manager, _HIGH[c]):
            a = np.where(fields.face_bnd_hi[c], grid.dx * d, a)
        fields.pc_a_face[c] = a
        fields.pc_a_nb[2 * c] = a
        fields.pc_a_nb[2 * c + 1] = shift(a, c, -1)


def _face_conductances_staggered(fields, grid, bc_manager):
    nz, ny, nx = grid.shape
    for c in range(3):
        dface = grid.dx * grid.dv / (grid.density * fields.mom_D[c])
        a = np.where(fields.face_interior[c], dface, 0.0)
        if _open(bc_manager, _LOW[c]):
            a = np.where(fields.face_bnd_lo[c], dface, a)
        if _open(bc_manager, _HIGH[c]):
            a = np.where(fields.face_bnd_hi[c], dface, a)
        fields.pc_a_face[c] = a
        fields.pc_a_nb[2 * c] = shift(a, c, 1)[:nz, :ny, :nx]
        fields.pc_a_nb[2 * c + 1] = a[:nz, :ny, :nx]


def assemble_pressure_correction(fields, grid, bc_manager):
    """Fill pc_a_face, pc_a_nb, pc_a_p and pc_b from the momentum diagonal and the predicted fluxes."""
    if fields.staggered:
        _face_conductances_staggered(fields, grid, bc_manager)
        divergence = staggered_flux_divergence(fields.vel, grid)
    else:
        _face_conductances_collocated(fields, grid, bc_manager)
        divergence = flux_divergence(fields.face_flux)
    fields.pc_b[...] = np.where(fields.p_active, -divergence, 0.0)
    set_diagonal(fields)


def set_diagonal(fields):
    """a'_P = sum(a'_nb); cells without any open face keep p' = 0."""
    a_p = fields.pc_a_nb.sum(axis=0)
    enclosed = a_p == 0.0
    fields.pc_a_p[...] = np.where(enclosed, 1.0, a_p)
    fields.pc_b[enclosed] = 0.0
