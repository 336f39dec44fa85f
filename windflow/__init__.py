"""
windflow: incremental finite-volume solver for near-real-time wind flow around buildings.
"""

from .constructor.config import (
    ConvectionScheme,
    FaceInterpolation,
    FluidSimConfig,
    GridInfo,
    GridType,
    InflowType,
    MomentumFormulation,
    SolidType,
    SolverType,
    TurbulenceModel,
)
from .constructor.boundary_conditions import BoundaryConditionManager, BoundaryLocation, BoundaryType
from .constructor.case import create_lid_driven_cavity, create_wind_tunnel
from .exceptions import ConfigurationError, SolverDivergenceError, UnsupportedConfigurationError
from .solver.Algorithms import BaseAlgorithm, PisoSolver, SimpleSolver, Stage

__version__ = "0.1.0"


def create_solver(config, flags=None):
    """
    Build the solver selected by ``config.solver_type``.

    Parameters:
    -----------
    config : FluidSimConfig
        Run configuration
    flags : array_like, optional
        Flat obstacle mask of length Nx*Ny*Nz

    Returns:
    --------
    SimpleSolver or PisoSolver
    """
    if config.solver_type == SolverType.PISO:
        return PisoSolver(config, flags)
    return SimpleSolver(config, flags)
