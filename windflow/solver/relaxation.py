"""Resumable Jacobi relaxation loop shared by the momentum and pressure stages."""

import logging
import math
import time

from ..exceptions import SolverDivergenceError

log = logging.getLogger(__name__)


class TimeBudget:
    """
    Wall-clock budget of one external step() call.

    The clock is only read every ``check_interval`` iterations, so the budget
    is a soft cap.
    """

    def __init__(self, seconds, check_interval):
        self.seconds = seconds
        self.check_interval = check_interval
        self.start = time.perf_counter()

    def elapsed(self):
        return time.perf_counter() - self.start

    def exhausted(self, k):
        if self.seconds is None or k % self.check_interval != 0:
            return False
        return self.elapsed() >= self.seconds


def relax(sweep, swap, residual, start, max_iter, check_interval, tolerance, budget, name, converged=None):
    """
    Run Jacobi iterations ``start .. max_iter-1`` until convergence, cap or budget.

    Parameters:
    -----------
    sweep : callable
        Writes the next iterate into the current slot from the previous-iteration slot
    swap : callable
        Exchanges the current and previous-iteration slots
    residual : callable or None
        Returns the residual between the newest and the older iterate after a swap;
        None disables the early exit
    start : int
        Iteration to resume from
    max_iter, check_interval : int
        Iteration cap and residual-check interval
    tolerance : float
        Early-exit threshold
    budget : TimeBudget
        Wall-clock budget of the current call
    name : str
        Stage name used in messages
    converged : callable, optional
        Extra acceptance test on the newest iterate, consulted once the residual
        is below ``tolerance``; the loop only exits early when it returns True

    Returns:
    --------
    finished : bool
        True when the loop ended; the newest iterate is then in the current slot.
        False when paused; the newest iterate is left in the previous-iteration
        slot so that the next call resumes from it.
    next_iter : int
        Iteration to resume from
    last_residual : float or None
        Latest computed residual
    """
    last_residual = None
    k = start - 1
    for k in range(start, max_iter):
        sweep()
        swap()
        if residual is not None and k % check_interval == 0:
            last_residual = residual()
            if not math.isfinite(last_residual):
                raise SolverDivergenceError(f"{name} residual is {last_residual} at iteration {k}")
            log.debug(f"{name} iteration {k}: residual {last_residual:.3e}")
            if last_residual < tolerance and (converged is None or converged()):
                break
        if budget.exhausted(k):
            log.debug(f"{name} paused after iteration {k}")
            return False, k + 1, last_residual
    swap()
    return True, k + 1, last_residual
