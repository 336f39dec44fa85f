"""
PISO (Pressure Implicit with Splitting of Operators) algorithm implementation.
"""

import logging

import numpy as np

from .base_algorithm import BaseAlgorithm
from ..face_interpolation import cell_pressure_gradient, flux_divergence, linear_face_flux
from ..pressure_solver.assembly import set_diagonal
from ...core.stencil import shift

log = logging.getLogger(__name__)


class PisoSolver(BaseAlgorithm):
    """
    PISO algorithm implementation.

    After the SIMPLE pass of a step, ``n_corrections`` further pressure
    corrections are applied without re-solving momentum. Corrector k uses the
    neighbour contribution of the previous velocity correction u':

        u~   = sum(a_nb * u'_nb) / D
        b''  = -sum(F~_out)              F~ from linear interpolation of u~
        p''  from pres_max_iter Jacobi sweeps (no early exit)
        u'   = u~ - d * grad(p''),  u += u',  F += F~ - a'_f * (p''_N - p''_P)

    The correctors run once per FINISHED transition regardless of the time
    budget. Collocated grids only.
    """

    supports_staggered_grid = False

    def __init__(self, config, flags=None):
        """
        Initialize the PISO solver.

        Parameters:
        -----------
        config : FluidSimConfig
            Run configuration; ``piso_num_correctors`` sets the corrector count
        flags : array_like, optional
            Flat obstacle mask
        """
        super().__init__(config, flags)
        self.n_corrections = config.piso_num_correctors

    def run_correctors(self):
        for k in range(self.n_corrections):
            self._correct(k)

    def _correct(self, k):
        fields = self.fields
        grid = self.grid
        bc = self.bc_manager

        # u~ from the neighbours of the previous correction, zero source
        u_tilde = np.empty_like(fields.vel_corr)
        self.backend.momentum_sweep(u_tilde, fields.vel_corr, fields.mom_a_nb, fields.mom_D,
                                    np.zeros_like(fields.mom_b), fields.vel_active)
        bc.apply_velocity_boundary_conditions(u_tilde, fields, grid, correction=True)

        F_tilde = linear_face_flux(u_tilde, fields, grid)
        fields.pc_b[...] = np.where(fields.p_active, -flux_divergence(F_tilde), 0.0)
        set_diagonal(fields)

        fields.zero_pressure_correction()
        self.pressure_solver.solve_fixed(fields, self.pressure_solver.max_iterations)
        correction = fields.pc
        self.pressure_solver.apply_correction(fields, correction)

        d = grid.dv / (grid.density * fields.mom_D)
        grad = cell_pressure_gradient(correction, fields.solid, grid.dx)
        du = np.where(fields.vel_active, u_tilde - d * grad, 0.0)
        fields.vel += du
        fields.vel_corr[...] = du
        for c in range(3):
            fields.face_flux[c] += F_tilde[c] - fields.pc_a_face[c] * (shift(correction, c, 1) - correction)

        bc.apply_velocity_boundary_conditions(fields.vel, fields, grid)
        log.debug(f"PISO corrector {k + 1}: max |p''| = {np.max(np.abs(correction)):.3e}")
        fields.zero_pressure_correction()
