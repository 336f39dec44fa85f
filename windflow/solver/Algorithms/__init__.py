from .base_algorithm import BaseAlgorithm, Stage
from .simple import SimpleSolver
from .piso import PisoSolver

__all__ = ['BaseAlgorithm', 'Stage', 'SimpleSolver', 'PisoSolver']
