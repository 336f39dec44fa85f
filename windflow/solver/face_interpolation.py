"""
Face fluxes for the collocated arrangement.

``F[c]`` is the volumetric flux through the "+" face of each cell along
component c (positive in the +c direction). The flux out of the "-" face of a
cell is therefore ``-shift(F[c], c, -1)``. Boundary faces take the normal
velocity of the boundary cell; faces touching a solid carry no flux.
"""

import numpy as np

from ..core.stencil import shift


def cell_pressure_gradient(p, solid, dx):
    """
    Central-difference pressure gradient at cell centres.

    A solid neighbour's pressure is replaced by the cell's own (zero gradient
    into immersed walls).

    Returns:
    --------
    ndarray
        (3, Nz, Ny, Nx) gradient, only meaningful in the interior
    """
    grad = np.empty((3,) + p.shape)
    for c in range(3):
        p_plus = np.where(shift(solid, c, 1), p, shift(p, c, 1))
        p_minus = np.where(shift(solid, c, -1), p, shift(p, c, -1))
        grad[c] = (p_plus - p_minus) / (2.0 * dx)
    return grad


def _boundary_flux(F, vel, fields, grid, c):
    un = vel[c]
    F[c] = np.where(fields.face_bnd_lo[c], grid.ds * un, F[c])
    F[c] = np.where(fields.face_bnd_hi[c], grid.ds * shift(un, c, 1), F[c])


def linear_face_flux(vel, fields, grid, out=None):
    """Face flux from the arithmetic mean of the two adjacent cell velocities."""
    F = np.zeros((3,) + grid.shape) if out is None else out
    for c in range(3):
        un = vel[c]
        F[c] = np.where(fields.face_interior[c], grid.ds * 0.5 * (un + shift(un, c, 1)), 0.0)
        _boundary_flux(F, vel, fields, grid, c)
    return F


def rhie_chow_face_flux(vel, p, D, fields, grid, out=None):
    """
    Rhie-Chow face flux.

    u_f = avg(u) - d_f * [(p_N - p_P)/dx - avg(grad p)], with d = dv/(rho*D)
    and d_f the mean of the two cell values.
    """
    F = np.zeros((3,) + grid.shape) if out is None else out
    grad = cell_pressure_gradient(p, fields.solid, grid.dx)
    d = grid.dv / (grid.density * D[0])
    for c in range(3):
        un = vel[c]
        d_f = 0.5 * (d + shift(d, c, 1))
        compact = (shift(p, c, 1) - p) / grid.dx
        u_f = 0.5 * (un + shift(un, c, 1)) - d_f * (compact - 0.5 * (grad[c] + shift(grad[c], c, 1)))
        F[c] = np.where(fields.face_interior[c], grid.ds * u_f, 0.0)
        _boundary_flux(F, vel, fields, grid, c)
    return F


def flux_divergence(F):
    """Net outflow sum(F_out) of every cell."""
    div = np.zeros(F.shape[1:])
    for c in range(3):
        div += F[c] - shift(F[c], c, -1)
    return div


def staggered_flux_divergence(vel, grid):
    """Net outflow of every pressure cell from staggered face velocities."""
    nz, ny, nx = grid.shape
    div = np.zeros(grid.vel_shape)
    for c in range(3):
        div += grid.ds * (shift(vel[c], c, 1) - vel[c])
    return div[:nz, :ny, :nx]
