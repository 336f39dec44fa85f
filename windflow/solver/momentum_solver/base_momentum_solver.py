"""
Abstract base class for momentum solvers.
"""

from abc import ABC, abstractmethod

from .assembly import assemble_collocated, assemble_staggered
from .discretization.convection_schemes import get_convection_scheme


class MomentumSolver(ABC):
    """
    Base class for momentum predictors.

    Owns the discretization scheme and the coefficient assembly; subclasses
    provide the relaxation.
    """

    def __init__(self, config, grid, backend, bc_manager):
        """
        Initialize the momentum solver.

        Parameters:
        -----------
        config : FluidSimConfig
            Run configuration
        grid : GridInfo
            Grid extents and derived scalars
        backend : NumpyBackend
            Execution backend for the sweeps
        bc_manager : BoundaryConditionManager
            Boundary conditions re-imposed after every sweep
        """
        self.config = config
        self.grid = grid
        self.backend = backend
        self.bc_manager = bc_manager
        self.discretization = get_convection_scheme(config.convection_scheme)
        self.force = config.external_force

    def assemble(self, fields):
        """Compute a_nb, D and b from velocity@t, pressure, face fluxes and eddy viscosity."""
        if fields.staggered:
            assemble_staggered(fields, self.grid, self.discretization, self.force)
        else:
            assemble_collocated(fields, self.grid, self.discretization, self.force)

    @abstractmethod
    def run(self, fields, start, budget):
        """
        Relax the momentum equations, resuming at iteration ``start``.

        Returns:
        --------
        finished, next_iter, last_residual
        """
        pass

    def get_solver_info(self):
        return {
            "name": self.__class__.__name__,
            "scheme": self.discretization.get_name(),
            "max_iterations": self.config.vel_max_iter,
            "tolerance": self.config.vel_tolerance,
        }
