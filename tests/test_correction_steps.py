import numpy as np
from numpy.testing import assert_allclose

from windflow.solver.face_interpolation import flux_divergence, linear_face_flux, staggered_flux_divergence
from windflow.solver.kernels import NumpyBackend
from windflow.solver.pressure_solver import JacobiSolver
from windflow.solver.velocity_solver import CollocatedVelocityUpdater, StaggeredVelocityUpdater

INNER = (slice(1, -1),) * 3


def _ramp(grid, slope=1.0):
    return np.broadcast_to(slope * np.arange(grid.shape[2]) * grid.dx, grid.shape).copy()


def test_collocated_velocity_increment(cavity_config, field_setup):
    config, grid, fields, manager = field_setup(cavity_config)
    updater = CollocatedVelocityUpdater(grid, manager)
    du = updater.velocity_increment(fields, _ramp(grid, 2.0))
    d = grid.dv / (grid.density * grid.D)
    assert_allclose(du[0][INNER], -2.0 * d, err_msg="Collocated correction should be -d * grad(p')")
    assert_allclose(du[1:], 0.0)
    assert np.all(du[:, 0] == 0.0), "Boundary layer must not be corrected"


def test_staggered_velocity_increment(make_config, field_setup):
    config, grid, fields, manager = field_setup(make_config(grid_type="staggered"))
    updater = StaggeredVelocityUpdater(grid, manager)
    du = updater.velocity_increment(fields, _ramp(grid, 2.0))
    d = grid.dv / (grid.density * grid.D)
    assert_allclose(du[0][1:7, 1:7, 2:7], -2.0 * d, err_msg="Interior faces see the compact difference")
    assert np.all(du[0][:, :, 1] == 0.0) and np.all(du[0][:, :, 7] == 0.0), "Wall faces must stay fixed"
    assert_allclose(du[1:], 0.0, atol=1e-15)


def test_update_velocity_stores_increment(cavity_config, field_setup, rng):
    config, grid, fields, manager = field_setup(cavity_config)
    updater = CollocatedVelocityUpdater(grid, manager)
    fields.vel[...] = rng.standard_normal(fields.vel.shape)
    before = fields.vel.copy()
    correction = np.zeros(grid.shape)
    correction[INNER] = rng.standard_normal((6, 6, 6))
    updater.update_velocity(fields, correction)

    assert_allclose(fields.vel[(slice(None),) + INNER], (before + fields.vel_corr)[(slice(None),) + INNER])
    assert_allclose(fields.vel[0, 1:-1, -1, 1:-1], 1.0, err_msg="Boundary conditions not re-imposed")


def test_face_flux_correction(cavity_config, field_setup, rng):
    config, grid, fields, manager = field_setup(cavity_config)
    solver = JacobiSolver(config, grid, NumpyBackend(), manager)
    solver.assemble(fields)
    F_before = rng.standard_normal(fields.face_flux.shape)
    fields.face_flux[...] = F_before
    correction = rng.standard_normal(grid.shape)
    CollocatedVelocityUpdater(grid, manager).correct_face_flux(fields, correction)

    expected = F_before[0][4, 4, 3] - fields.pc_a_face[0][4, 4, 3] * (correction[4, 4, 4] - correction[4, 4, 3])
    assert_allclose(fields.face_flux[0][4, 4, 3], expected)
    # Wall faces have zero conductance
    assert fields.face_flux[0][4, 4, 6] == F_before[0][4, 4, 6]


def test_collocated_mass_conservation(cavity_config, field_setup, rng):
    config, grid, fields, manager = field_setup(cavity_config)
    fields.vel[:, 1:-1, 1:-1, 1:-1] = rng.standard_normal((3, 6, 6, 6))
    manager.apply_velocity_boundary_conditions(fields.vel, fields, grid)
    linear_face_flux(fields.vel, fields, grid, out=fields.face_flux)

    solver = JacobiSolver(config, grid, NumpyBackend(), manager)
    solver.assemble(fields)
    b_max = np.abs(fields.pc_b).max()
    solver.solve_fixed(fields, 1000)
    CollocatedVelocityUpdater(grid, manager).update_velocity(fields, fields.pc)

    div = flux_divergence(fields.face_flux)
    assert np.abs(div[fields.p_active]).max() < 1e-8 * b_max, "Corrected face fluxes are not divergence-free"


def test_staggered_mass_conservation(make_config, field_setup, rng):
    config, grid, fields, manager = field_setup(make_config(grid_type="staggered"))
    fields.vel[:, 1:-1, 1:-1, 1:-1] = rng.standard_normal((3, 7, 7, 7))
    manager.apply_velocity_boundary_conditions(fields.vel, fields, grid)

    solver = JacobiSolver(config, grid, NumpyBackend(), manager)
    solver.assemble(fields)
    b_max = np.abs(fields.pc_b).max()
    solver.solve_fixed(fields, 1000)
    StaggeredVelocityUpdater(grid, manager).update_velocity(fields, fields.pc)

    div = staggered_flux_divergence(fields.vel, grid)
    assert np.abs(div[fields.p_active]).max() < 1e-8 * b_max, "Corrected face velocities are not divergence-free"
