from .base_momentum_solver import MomentumSolver
from .jacobi_solver import JacobiMomentumSolver

__all__ = ['MomentumSolver', 'JacobiMomentumSolver']
