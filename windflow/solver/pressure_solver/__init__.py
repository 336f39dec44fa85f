from .base_pressure_solver import PressureSolver, apply_pressure_gauge
from .jacobi import JacobiSolver

__all__ = ['PressureSolver', 'JacobiSolver', 'apply_pressure_gauge']
