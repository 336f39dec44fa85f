"""
Momentum coefficient assembly.

Both arrangements are brought into the form D*u_P = sum(a_nb*u_nb) + b with
fluxes lagged from velocity@t. The results are written into the momentum
coefficient buffers of the field store: ``mom_a_nb`` (3, 6, ...), ``mom_D``
and ``mom_b`` (3, ...).
"""

import numpy as np

from ...core.stencil import shift
from ..face_interpolation import cell_pressure_gradient


def assemble_collocated(fields, grid, scheme, force):
    """
    Assemble the cell-centred momentum system.

    All three components share a_nb and D; the face flux is ``fields.face_flux``
    and the diffusion coefficient includes the face eddy viscosity.
    """
    F = fields.face_flux
    a_nb = np.empty((6,) + grid.shape)
    a_p = np.zeros(grid.shape)
    for c in range(3):
        g_plus = grid.dx * (grid.nu + fields.nu_t_face[c])
        g_minus = shift(g_plus, c, -1)
        a_nb[2 * c], ap_plus = scheme.calculate_flux_coefficients(F[c], g_plus)
        a_nb[2 * c + 1], ap_minus = scheme.calculate_flux_coefficients(-shift(F[c], c, -1), g_minus)
        a_p += ap_plus + ap_minus

    fields.mom_a_nb[...] = a_nb[np.newaxis]
    fields.mom_D[...] = (grid.dv / grid.dt + a_p)[np.newaxis]

    grad = cell_pressure_gradient(fields.p, fields.solid, grid.dx)
    for c in range(3):
        fields.mom_b[c] = (grid.dv / grid.dt * fields.vel_time[c]
                           - grid.dv / grid.density * grad[c]
                           + force[c] * grid.dv
                           + fields.les_source[c])


def _staggered_fluxes(vel, grid, c, d):
    """Outward fluxes through the +d and -d faces of the control volume around u_c."""
    ud = vel[d]
    if d == c:
        f_plus = grid.ds * 0.5 * (ud + shift(ud, c, 1))
        f_minus = -grid.ds * 0.5 * (ud + shift(ud, c, -1))
    else:
        ud_up = shift(ud, d, 1)
        f_plus = grid.ds * 0.5 * (ud_up + shift(ud_up, c, -1))
        f_minus = -grid.ds * 0.5 * (ud + shift(ud, c, -1))
    return f_plus, f_minus


def assemble_staggered(fields, grid, scheme, force):
    """Assemble the face-centred momentum system, one control volume per velocity face."""
    vel = fields.vel_time
    p = fields.padded(fields.p)
    conductance = grid.dx * grid.nu
    for c in range(3):
        a_p = np.zeros(grid.vel_shape)
        for d in range(3):
            f_plus, f_minus = _staggered_fluxes(vel, grid, c, d)
            fields.mom_a_nb[c, 2 * d], ap_plus = scheme.calculate_flux_coefficients(f_plus, conductance)
            fields.mom_a_nb[c, 2 * d + 1], ap_minus = scheme.calculate_flux_coefficients(f_minus, conductance)
            a_p += ap_plus + ap_minus
        fields.mom_D[c] = grid.dv / grid.dt + a_p
        fields.mom_b[c] = (grid.dv / grid.dt * vel[c]
                           - grid.ds / grid.density * (p - shift(p, c, -1))
                           + force[c] * grid.dv)
