"""
SIMPLE (Semi-Implicit Method for Pressure-Linked Equations) algorithm implementation.
"""

from .base_algorithm import BaseAlgorithm


class SimpleSolver(BaseAlgorithm):
    """
    SIMPLE algorithm implementation.

    One momentum prediction, one pressure correction and one velocity
    correction per time step, each relaxed by Jacobi iterations under the
    scheduler's time budget.
    """

    def run_correctors(self):
        """SIMPLE has no extra correctors."""
        pass
