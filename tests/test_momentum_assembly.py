import numpy as np
import pytest
from numpy.testing import assert_allclose

from windflow.constructor.boundary_conditions import BoundaryConditionManager
from windflow.solver.face_interpolation import linear_face_flux
from windflow.solver.kernels import NumpyBackend
from windflow.solver.momentum_solver import JacobiMomentumSolver
from windflow.solver.momentum_solver.assembly import assemble_collocated, assemble_staggered
from windflow.solver.momentum_solver.discretization.convection_schemes import (
    CentralDiscretization,
    UpwindDiscretization,
    get_convection_scheme,
)
from windflow.constructor.config import ConvectionScheme
from windflow.exceptions import UnsupportedConfigurationError

INNER = (slice(1, -1),) * 3


def _uniform_x_flow(fields, grid, U):
    fields.vel_time[...] = 0.0
    fields.vel_time[0] = U
    linear_face_flux(fields.vel_time, fields, grid, out=fields.face_flux)


def test_scheme_coefficients(subtests):
    F = np.array([-2.0, 0.0, 3.0])
    G = 1.0
    with subtests.test("central"):
        a_nb, a_p = CentralDiscretization().calculate_flux_coefficients(F, G)
        assert_allclose(a_nb, [2.0, 1.0, -0.5])
        assert_allclose(a_p, [1.0, 1.0, 1.0])
    with subtests.test("upwind"):
        a_nb, a_p = UpwindDiscretization().calculate_flux_coefficients(F, G)
        assert_allclose(a_nb, [3.0, 1.0, 1.0])
        assert_allclose(a_p, [1.0, 1.0, 4.0])
    with subtests.test("lookup"):
        assert get_convection_scheme(ConvectionScheme.UDS).get_name() == "Upwind"
    with subtests.test("unknown scheme"):
        with pytest.raises(UnsupportedConfigurationError):
            get_convection_scheme("quick")


def test_diffusion_only(cavity_config, field_setup):
    config, grid, fields, manager = field_setup(cavity_config)
    assemble_collocated(fields, grid, CentralDiscretization(), (0.0, 0.0, 0.0))
    G = grid.dx * grid.nu
    assert_allclose(fields.mom_a_nb[:, :, 1:-1, 1:-1, 1:-1], G, err_msg="Diffusion-only a_nb should equal nu*ds/dx")
    assert_allclose(fields.mom_D[:, 1:-1, 1:-1, 1:-1], grid.D, err_msg="Diagonal should equal dv/dt + 6 nu ds/dx")
    assert_allclose(fields.mom_b, 0.0)


@pytest.mark.parametrize("scheme", ["cds", "uds"])
def test_uniform_convection(make_config, field_setup, scheme):
    config, grid, fields, manager = field_setup(make_config(convection_scheme=scheme))
    U = 0.5
    _uniform_x_flow(fields, grid, U)
    discretization = get_convection_scheme(config.convection_scheme)
    assemble_collocated(fields, grid, discretization, (0.0, 0.0, 0.0))

    G = grid.dx * grid.nu
    F = grid.ds * U
    a_e = fields.mom_a_nb[0, 0][INNER]
    a_w = fields.mom_a_nb[0, 1][INNER]
    D = fields.mom_D[0][INNER]
    if scheme == "cds":
        assert_allclose(a_e, G - 0.5 * F, err_msg="CDS east coefficient")
        assert_allclose(a_w, G + 0.5 * F, err_msg="CDS west coefficient")
        assert_allclose(D, grid.D)
    else:
        assert_allclose(a_e, G, err_msg="UDS east coefficient")
        assert_allclose(a_w, G + F, err_msg="UDS west coefficient")
        assert_allclose(D, grid.D + F)
    # Sum of a_nb equals D - dv/dt for a divergence-free flux
    assert_allclose(fields.mom_a_nb[0][(slice(None),) + INNER].sum(axis=0), D - grid.dv / grid.dt)


def test_source_terms(cavity_config, field_setup, rng, subtests):
    config, grid, fields, manager = field_setup(cavity_config)
    nx = grid.shape[2]
    fields.p[...] = np.arange(nx)[np.newaxis, np.newaxis, :] * grid.dx * 2.0
    fields.vel_time[...] = rng.standard_normal(fields.vel_time.shape)
    fields.les_source[...] = 0.25
    force = (0.0, -9.81, 0.0)
    assemble_collocated(fields, grid, CentralDiscretization(), force)

    with subtests.test("pressure gradient"):
        expected = grid.dv / grid.dt * fields.vel_time[0] - grid.dv / grid.density * 2.0 + 0.25
        assert_allclose(fields.mom_b[0][INNER], expected[INNER])

    with subtests.test("body force"):
        expected = grid.dv / grid.dt * fields.vel_time[1] - 9.81 * grid.dv + 0.25
        assert_allclose(fields.mom_b[1][INNER], expected[INNER])


def test_uniform_flow_is_fixed_point(make_config, field_setup):
    config, grid, fields, manager = field_setup(make_config(convection_scheme="uds"))
    U = 0.3
    _uniform_x_flow(fields, grid, U)
    assemble_collocated(fields, grid, UpwindDiscretization(), (0.0, 0.0, 0.0))
    fields.vel_iter[...] = fields.vel_time
    NumpyBackend().momentum_sweep(fields.vel, fields.vel_iter, fields.mom_a_nb, fields.mom_D,
                                  fields.mom_b, fields.vel_active)
    assert_allclose(fields.vel[0][INNER], U, rtol=1e-12)
    assert_allclose(fields.vel[1:][(slice(None),) + INNER], 0.0, atol=1e-14)


def test_sweep_reads_previous_generation_only(cavity_config, field_setup, rng):
    config, grid, fields, manager = field_setup(cavity_config)
    assemble_collocated(fields, grid, CentralDiscretization(), (0.0, 0.0, 0.0))
    fields.vel_iter[...] = rng.standard_normal(fields.vel_iter.shape)
    backend = NumpyBackend()

    out_a = np.zeros_like(fields.vel)
    out_b = rng.standard_normal(fields.vel.shape)
    backend.momentum_sweep(out_a, fields.vel_iter, fields.mom_a_nb, fields.mom_D, fields.mom_b, fields.vel_active)
    backend.momentum_sweep(out_b, fields.vel_iter, fields.mom_a_nb, fields.mom_D, fields.mom_b, fields.vel_active)
    assert np.array_equal(out_a[(slice(None),) + INNER], out_b[(slice(None),) + INNER])


def test_staggered_assembly(make_config, field_setup, subtests):
    config, grid, fields, manager = field_setup(make_config(grid_type="staggered"))
    nx = grid.shape[2]
    fields.p[...] = np.arange(nx)[np.newaxis, np.newaxis, :] * grid.dx
    assemble_staggered(fields, grid, CentralDiscretization(), (0.0, 0.0, 0.0))

    with subtests.test("diffusion-only coefficients"):
        assert_allclose(fields.mom_a_nb[:, :, 2:-2, 2:-2, 2:-2], grid.dx * grid.nu)
        assert_allclose(fields.mom_D, grid.D)

    with subtests.test("compact pressure gradient"):
        # Interior x-faces 2..N-2 see p_i - p_(i-1) = dx
        assert_allclose(fields.mom_b[0][2:-2, 2:-2, 2:nx - 1], -grid.dv / grid.density)
        assert_allclose(fields.mom_b[1][2:-2, 2:-2, 2:nx - 1], 0.0)


def test_naive_matches_accelerated(make_config, field_setup):
    results = []
    for formulation in ("accelerated", "naive"):
        config, grid, fields, manager = field_setup(make_config(momentum_formulation=formulation))
        local = np.random.default_rng(7)
        fields.vel_time[:, 1:-1, 1:-1, 1:-1] = 0.1 * local.standard_normal((3, 6, 6, 6))
        manager.apply_velocity_boundary_conditions(fields.vel_time, fields, grid)
        fields.vel_iter[...] = fields.vel_time
        linear_face_flux(fields.vel_time, fields, grid, out=fields.face_flux)

        solver = JacobiMomentumSolver(config, grid, NumpyBackend(), manager)
        solver.assemble(fields)
        for _ in range(5):
            solver.sweep(fields)
            fields.swap_velocity_iteration()
        results.append(fields.vel_iter.copy())
    assert_allclose(results[1], results[0], rtol=1e-13, err_msg="Naive and accelerated momentum sweeps differ")
