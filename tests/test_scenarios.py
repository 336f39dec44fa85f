"""
End-to-end flow scenarios.
"""

from pathlib import Path

import numpy as np
import pytest
from numpy.testing import assert_allclose

from windflow import FluidSimConfig, SimpleSolver, create_lid_driven_cavity, create_solver, create_wind_tunnel
from windflow.solver.residual import normalized_residual

CONFIG_DIR = Path(__file__).resolve().parent.parent / "shared_configs"


def test_uniform_inflow_is_preserved(grid_type):
    config = create_wind_tunnel(
        size=(4.0, 2.0, 2.0), n=16, wind_speed=1.5, time_budget=None,
        grid_type=grid_type, face_interpolation="linear" if grid_type == "staggered" else "rhie_chow",
        velocity_bc={"x0": "fixed_value", "xn": "zero_gradient", "y0": "symmetry",
                     "yn": "symmetry", "z0": "symmetry", "zn": "symmetry"},
    )
    solver = SimpleSolver(config)
    solver.solve(3)
    vel = solver.velocity
    inner = (slice(2, -2),) * 3
    assert_allclose(vel[0][inner], 1.5, rtol=1e-12, err_msg="Uniform flow should be a steady solution")
    assert_allclose(vel[1:][(slice(None),) + inner], 0.0, atol=1e-12)
    assert_allclose(solver.pressure, 0.0, atol=1e-12)


def test_log_inflow_profile():
    config = create_wind_tunnel(size=(4.0, 2.0, 2.0), n=16, wind_speed=2.0, log_profile=True,
                                inflow_roughness=0.1, reference_height=1.0, time_budget=None)
    solver = SimpleSolver(config)
    grid = solver.grid
    height = grid.cell_centres(1)
    expected = 2.0 * np.log(np.maximum(height, 0.1) / 0.1) / np.log(1.0 / 0.1)

    inflow = solver.velocity[0][4, 1:-1, 0]
    assert_allclose(inflow, expected[1:-1], err_msg="Inflow ghost cells should follow the log law")
    assert np.all(np.diff(inflow) > 0.0)
    assert_allclose(solver.inflow_profile(), expected)

    solver.set_fixed_value_velocity_bc(0.0)
    assert solver.inflow_profile() is None


@pytest.mark.slow
def test_lid_driven_cavity_vortex():
    config = create_lid_driven_cavity(n=10, reynolds_number=100.0, convection_scheme="uds",
                                      vel_max_iter=20, pres_max_iter=400, time_budget=None)
    solver = create_solver(config)
    solver.solve(499)
    previous = solver.velocity.copy()
    solver.step()

    fields = solver.fields
    steady = normalized_residual(solver.backend, fields.vel_time, previous, fields.mom_D,
                                 fields.vel_active, solver.grid.n_cells)
    assert steady < 1e-4, f"Cavity flow not steady, residual between steps {steady:.2e}"

    # Vertical centreline of the mid-plane: driven forward under the lid, recirculating below
    u = solver.velocity[0, 5, 1:-1, 5]
    assert u[-1] > 0.1
    assert u[:5].min() < -0.01
    assert solver.continuity_residual() < 1e-2 * np.abs(solver.fields.face_flux).max()


def test_building_in_wind():
    config = FluidSimConfig.from_yaml(CONFIG_DIR / "wind_tunnel_box.yaml").with_changes(
        physical_domain_size=(8.0, 4.0, 8.0), grid_res_x=16, time_budget=None,
        vel_max_iter=10, pres_max_iter=100, wall_roughness=0.01,
    )
    solver = create_solver(config)
    assert solver.flags.any()
    solver.solve(3)

    assert np.all(np.isfinite(solver.velocity))
    assert np.all(solver.velocity[:, solver.fields.solid] == 0.0)
    # Flow is slowed down in front of the building
    grid = solver.grid
    k = grid.shape[0] // 2
    assert solver.velocity[0][k, 2, 2] > solver.velocity[0][k, 2, 4]
    assert solver.fields.nu_t.max() > 0.0
