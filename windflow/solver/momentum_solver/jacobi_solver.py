"""
Jacobi-method momentum predictor.
"""

from functools import partial

from .base_momentum_solver import MomentumSolver
from ..relaxation import relax
from ..residual import velocity_residual
from ...constructor.config import MomentumFormulation


class JacobiMomentumSolver(MomentumSolver):
    """
    Momentum solver that relaxes D*u = sum(a_nb*u_nb) + b with Jacobi sweeps.

    Each sweep reads ``vel_iter`` and writes ``vel``, then the boundary
    conditions are re-imposed on ``vel``. With the accelerated formulation the
    coefficients are assembled once per time step by the caller; the naive
    formulation re-assembles them inside every sweep.
    """

    def __init__(self, config, grid, backend, bc_manager):
        super().__init__(config, grid, backend, bc_manager)
        self.naive = config.momentum_formulation == MomentumFormulation.NAIVE

    def sweep(self, fields):
        if self.naive:
            self.assemble(fields)
        self.backend.momentum_sweep(fields.vel, fields.vel_iter, fields.mom_a_nb,
                                    fields.mom_D, fields.mom_b, fields.vel_active)
        self.bc_manager.apply_velocity_boundary_conditions(fields.vel, fields, self.grid)

    def run(self, fields, start, budget):
        cfg = self.config
        residual = partial(velocity_residual, self.backend, fields) if cfg.cal_residual else None
        return relax(
            sweep=partial(self.sweep, fields),
            swap=fields.swap_velocity_iteration,
            residual=residual,
            start=start,
            max_iter=cfg.vel_max_iter,
            check_interval=cfg.vel_residual_check_interval,
            tolerance=cfg.vel_tolerance,
            budget=budget,
            name="Momentum",
        )
