"""
Abstract base class for pressure-correction solvers.
"""

from abc import ABC, abstractmethod

import numpy as np

from .assembly import assemble_pressure_correction


def apply_pressure_gauge(p, fields, bc_manager):
    """
    Remove the additive null space of an all-Neumann pressure field.

    When no face fixes the pressure level, the reference cell's value is
    subtracted from every non-solid cell so that the reference cell is exactly 0.
    """
    if bc_manager.has_fixed_pressure():
        return
    reference = float(p[fields.ref_cell])
    fluid = ~fields.solid
    p[fluid] -= reference


class PressureSolver(ABC):
    """
    Base class for pressure-correction solvers.
    """

    def __init__(self, config, grid, backend, bc_manager):
        """
        Initialize the pressure solver.

        Parameters:
        -----------
        config : FluidSimConfig
            Run configuration (iteration cap, tolerance, check interval)
        grid : GridInfo
            Grid extents and derived scalars
        backend : NumpyBackend
            Execution backend for the sweeps
        bc_manager : BoundaryConditionManager
            Boundary conditions, applied to p' after every sweep
        """
        self.config = config
        self.grid = grid
        self.backend = backend
        self.bc_manager = bc_manager
        self.tolerance = config.pres_tolerance
        self.max_iterations = config.pres_max_iter

    def assemble(self, fields):
        assemble_pressure_correction(fields, self.grid, self.bc_manager)

    @abstractmethod
    def run(self, fields, start, budget):
        """
        Relax the pressure-correction equation, resuming at iteration ``start``.

        Returns:
        --------
        finished, next_iter, last_residual
        """
        pass

    def apply_correction(self, fields, correction):
        """Add the converged correction into the pressure (fluid cells only), re-impose BCs and the gauge."""
        fluid = ~fields.solid
        fields.p[fluid] += correction[fluid]
        self.bc_manager.apply_pressure_boundary_conditions(fields.p, fields, self.grid)
        apply_pressure_gauge(fields.p, fields, self.bc_manager)

    def get_solver_info(self):
        """
        Get information about the solver.

        Returns:
        --------
        dict
            Solver name, iteration cap and tolerance
        """
        return {
            "name": self.__class__.__name__,
            "max_iterations": self.max_iterations,
            "tolerance": self.tolerance,
        }
