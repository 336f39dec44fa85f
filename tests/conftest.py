# conftest.py

import numpy as np
import pytest

from windflow import FluidSimConfig
from windflow.constructor.boundary_conditions import BoundaryConditionManager
from windflow.core.fields import FieldStore


def _cavity_config(n=8, grid_type="collocated", **overrides):
    """Small lid-driven cavity: unit box, lid speed 1, Re = 100, CFL 0.4."""
    params = dict(
        physical_domain_size=(1.0, 1.0, 1.0),
        grid_res_x=n,
        dt=0.4 / n,
        mu=0.01,
        u_max=1.0,
        grid_type=grid_type,
        face_interpolation="linear" if grid_type == "staggered" else "rhie_chow",
        velocity_values={"yn": (1.0, 0.0, 0.0)},
        vel_max_iter=20,
        pres_max_iter=100,
        time_budget=None,
    )
    params.update(overrides)
    return FluidSimConfig(**params)


@pytest.fixture
def make_config():
    """Factory for small cavity configurations with keyword overrides."""
    return _cavity_config


@pytest.fixture
def cavity_config():
    return _cavity_config()


@pytest.fixture
def field_setup():
    """Build (config, grid, fields, bc_manager) with buffers filled from the configuration."""
    def build(config):
        grid = config.grid()
        fields = FieldStore(grid)
        manager = BoundaryConditionManager.from_config(config)
        manager.fill_boundary_buffers(fields)
        return config, grid, fields, manager
    return build


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def pytest_generate_tests(metafunc):
    if "backend_name" in metafunc.fixturenames:
        metafunc.parametrize("backend_name", ["numpy", "numba"])
    if "grid_type" in metafunc.fixturenames:
        metafunc.parametrize("grid_type", ["collocated", "staggered"])
