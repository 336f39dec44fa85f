import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from windflow import SolverDivergenceError
from windflow.solver.kernels import NumpyBackend
from windflow.solver.relaxation import TimeBudget, relax
from windflow.solver.residual import normalized_residual


def test_normalized_residual_value(rng):
    backend = NumpyBackend()
    shape = (2, 10, 9, 11)
    cur = rng.standard_normal(shape)
    prev = rng.standard_normal(shape)
    D = rng.uniform(1.0, 2.0, shape)
    active = rng.uniform(size=shape) > 0.3

    expected = math.sqrt(np.sum(np.where(active, (D * (cur - prev)) ** 2, 0.0)) / (2 * 10 * 9 * 11))
    res = normalized_residual(backend, cur, prev, D, active, 10 * 9 * 11)
    assert_allclose(res, expected, rtol=1e-12, err_msg="Block-reduced residual differs from the direct sum")


def test_residual_ignores_inactive(rng):
    backend = NumpyBackend()
    cur = rng.standard_normal((1, 8, 8, 8))
    active = np.zeros(cur.shape, dtype=bool)
    assert normalized_residual(backend, cur, np.zeros_like(cur), np.ones_like(cur), active, 512) == 0.0


def test_residual_nan(rng):
    backend = NumpyBackend()
    cur = rng.standard_normal((1, 8, 8, 8))
    cur[0, 3, 3, 3] = np.nan
    res = normalized_residual(backend, cur, np.zeros_like(cur), np.ones_like(cur),
                              np.ones(cur.shape, dtype=bool), 512)
    assert math.isnan(res)


class _Counter:
    """Scalar 'relaxation' x <- x/2 held in two slots like the field buffers."""

    def __init__(self):
        self.cur = np.array([1.0])
        self.prev = np.array([1.0])
        self.sweeps = 0

    def sweep(self):
        self.cur[0] = 0.5 * self.prev[0]
        self.sweeps += 1

    def swap(self):
        self.cur, self.prev = self.prev, self.cur

    def residual(self):
        return abs(self.prev[0] - self.cur[0])


def test_relax_runs_to_cap():
    c = _Counter()
    finished, next_iter, res = relax(c.sweep, c.swap, None, 0, 5, 1, 0.0, TimeBudget(None, 1), "test")
    assert finished and next_iter == 5 and res is None
    assert c.sweeps == 5
    assert c.cur[0] == 0.5 ** 5


def test_relax_early_exit():
    c = _Counter()
    finished, next_iter, res = relax(c.sweep, c.swap, c.residual, 0, 100, 1, 1e-3, TimeBudget(None, 1), "test")
    assert finished
    assert res < 1e-3
    assert next_iter == c.sweeps < 100
    # The newest iterate ends up in the current slot
    assert c.cur[0] == 0.5 ** c.sweeps


def test_relax_early_exit_needs_acceptance():
    c = _Counter()
    # newest iterate sits in the previous slot after the swap
    finished, next_iter, res = relax(c.sweep, c.swap, c.residual, 0, 100, 1, 1e-3, TimeBudget(None, 1), "test",
                                     converged=lambda: c.prev[0] < 1e-6)
    assert finished
    assert c.sweeps == next_iter == 20
    assert c.cur[0] == 0.5 ** 20


def test_relax_pause_and_resume():
    reference = _Counter()
    relax(reference.sweep, reference.swap, None, 0, 7, 1, 0.0, TimeBudget(None, 1), "test")

    c = _Counter()
    k = 0
    calls = 0
    finished = False
    while not finished:
        finished, k, _ = relax(c.sweep, c.swap, None, k, 7, 1, 0.0, TimeBudget(0.0, 3), "test")
        calls += 1
    # paused after iterations 0, 3 and 6, then one call to close the loop
    assert calls == 4
    assert c.sweeps == 7
    assert c.cur[0] == reference.cur[0]


def test_relax_divergence():
    c = _Counter()
    c.prev[0] = np.nan
    with pytest.raises(SolverDivergenceError):
        relax(c.sweep, c.swap, c.residual, 0, 10, 1, 0.0, TimeBudget(None, 1), "momentum")


def test_time_budget():
    unbounded = TimeBudget(None, 1)
    assert not unbounded.exhausted(0)
    zero = TimeBudget(0.0, 4)
    assert zero.exhausted(0) and zero.exhausted(8)
    assert not zero.exhausted(3)
