"""
Weighted Jacobi solver for the pressure-correction equation.
"""

from functools import partial

from .base_pressure_solver import PressureSolver
from ..relaxation import relax
from ..residual import pressure_equation_imbalance, pressure_residual


class JacobiSolver(PressureSolver):
    """
    Weighted Jacobi solver for the pressure-correction equation.

    Each sweep reads ``pc_iter`` and writes ``pc``; afterwards the boundary
    layer of ``pc`` gets 0 on fixed-pressure faces and a copy of the interior
    elsewhere. The weight ``omega`` < 1 damps the checkerboard mode that plain
    Jacobi leaves untouched on the 7-point stencil. An early exit on the
    iterate residual is only accepted once the largest per-cell imbalance of
    the pressure-correction equation is also below the tolerance.
    """

    def __init__(self, config, grid, backend, bc_manager):
        super().__init__(config, grid, backend, bc_manager)
        self.omega = config.pres_relaxation

    def sweep(self, fields):
        self.backend.pressure_sweep(fields.pc, fields.pc_iter, fields.pc_a_nb, fields.pc_a_p,
                                    fields.pc_b, fields.p_active, self.omega)
        self.bc_manager.apply_pressure_boundary_conditions(fields.pc, fields, self.grid, correction=True)

    def run(self, fields, start, budget):
        cfg = self.config
        residual = partial(pressure_residual, self.backend, fields) if cfg.cal_residual else None
        return relax(
            sweep=partial(self.sweep, fields),
            swap=fields.swap_pressure_correction_iteration,
            residual=residual,
            start=start,
            max_iter=self.max_iterations,
            check_interval=cfg.pres_residual_check_interval,
            tolerance=self.tolerance,
            budget=budget,
            name="Pressure correction",
            converged=partial(self.is_mass_conserving, fields),
        )

    def is_mass_conserving(self, fields):
        """True when the newest iterate (in ``pc_iter``) leaves every fluid cell within ``tolerance`` of zero net outflow."""
        return pressure_equation_imbalance(fields, fields.pc_iter) < self.tolerance

    def solve_fixed(self, fields, num_iterations):
        """Run exactly ``num_iterations`` sweeps; the result ends up in ``fields.pc``."""
        for _ in range(num_iterations):
            self.sweep(fields)
            fields.swap_pressure_correction_iteration()
        fields.swap_pressure_correction_iteration()

    def get_solver_info(self):
        info = super().get_solver_info()
        info["omega"] = self.omega
        return info
