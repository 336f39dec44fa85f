"""
Velocity updaters for the two grid arrangements.
"""

import numpy as np

from .base_velocity_solver import VelocityUpdater
from ..face_interpolation import cell_pressure_gradient
from ...core.stencil import shift


class CollocatedVelocityUpdater(VelocityUpdater):
    """
    Cell-centred correction u -= d_P * (p'_+ - p'_-)/(2dx).

    The stored face fluxes are corrected in flux form, F -= a'_f * (p'_N - p'_P),
    which is the correction the pressure-correction equation was built for.
    """

    def velocity_increment(self, fields, correction):
        grid = self.grid
        d = grid.dv / (grid.density * fields.mom_D)
        grad = cell_pressure_gradient(correction, fields.solid, grid.dx)
        return np.where(fields.vel_active, -d * grad, 0.0)

    def correct_face_flux(self, fields, correction):
        for c in range(3):
            fields.face_flux[c] -= fields.pc_a_face[c] * (shift(correction, c, 1) - correction)


class StaggeredVelocityUpdater(VelocityUpdater):
    """Face correction u_f -= d_f * (p'_P - p'_(P-1))/dx on interior faces."""

    def velocity_increment(self, fields, correction):
        grid = self.grid
        pc = fields.padded(correction)
        du = np.zeros((3,) + grid.vel_shape)
        for c in range(3):
            d = grid.dv / (grid.density * fields.mom_D[c])
            du[c] = np.where(fields.vel_active[c], -d * (pc - shift(pc, c, -1)) / grid.dx, 0.0)
        return du
