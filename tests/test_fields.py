import numpy as np
import pytest

from windflow.core.fields import FieldStore
from windflow.core.stencil import shift


def test_field_store_shapes(make_config, grid_type, subtests):
    grid = make_config(grid_type=grid_type).grid()
    fields = FieldStore(grid)
    n = 9 if grid_type == "staggered" else 8

    with subtests.test("velocity buffers"):
        for name in ("vel", "vel_iter", "vel_time", "vel_corr", "mom_b", "mom_D", "les_source"):
            assert getattr(fields, name).shape == (3, n, n, n), name
        assert fields.mom_a_nb.shape == (3, 6, n, n, n)

    with subtests.test("pressure buffers"):
        for name in ("p", "pc", "pc_iter", "pc_a_p", "pc_b", "nu_t"):
            assert getattr(fields, name).shape == (8, 8, 8), name
        assert fields.pc_a_nb.shape == (6, 8, 8, 8)

    with subtests.test("face fluxes only on collocated grids"):
        if grid_type == "staggered":
            assert fields.face_flux is None
        else:
            assert fields.face_flux.shape == (3, 8, 8, 8)

    with subtests.test("boundary buffers"):
        assert len(fields.vel_bnd) == 6 and len(fields.pres_bnd) == 6
        for buf in fields.vel_bnd.values():
            assert buf.shape == (3, n, n)

    with subtests.test("initial values"):
        assert np.all(fields.vel == 0.0)
        assert np.allclose(fields.mom_D, grid.D)
        assert np.all(fields.pc_a_p == 1.0)


def test_flag_classification(make_config, subtests):
    grid = make_config().grid()
    fields = FieldStore(grid)
    flags = np.zeros(grid.shape, dtype=np.int32)
    flags[3, 3, 3] = 1
    fields.set_flags(flags)

    with subtests.test("active cells exclude boundary layer and solids"):
        assert fields.p_active.sum() == 6 ** 3 - 1
        assert not fields.p_active[3, 3, 3]
        assert not fields.p_active[0, 4, 4]

    with subtests.test("interior faces"):
        # Faces between two active cells: 5 per line, minus the two touching the solid
        assert fields.face_interior[0].sum() == 5 * 36 - 2
        assert not fields.face_interior[0][3, 3, 2]
        assert not fields.face_interior[0][3, 3, 3]

    with subtests.test("boundary faces"):
        assert fields.face_bnd_lo[0].sum() == 36
        assert fields.face_bnd_hi[0].sum() == 36
        assert fields.face_bnd_lo[0][4, 4, 0]
        assert fields.face_bnd_hi[0][4, 4, 6]

    with subtests.test("reference cell"):
        assert fields.ref_cell == (4, 4, 4)


def test_staggered_face_classification(make_config):
    grid = make_config(grid_type="staggered").grid()
    fields = FieldStore(grid)
    flags = np.zeros(grid.shape, dtype=np.int32)
    flags[3, 3, 3] = 1
    fields.set_flags(flags)

    # u at velocity index i lives between cells i-1 and i
    assert fields.vel_solid[0][3, 3, 3] and fields.vel_solid[0][3, 3, 4]
    assert not fields.vel_solid[0][3, 3, 5]
    assert fields.face_interior[0].sum() == 5 * 36 - 2
    assert fields.face_bnd_lo[0].sum() == 36
    assert fields.face_bnd_hi[0].sum() == 36
    assert fields.face_bnd_lo[0][4, 4, 1] and fields.face_bnd_hi[0][4, 4, 7]


def test_reference_cell_moves_out_of_solid(make_config):
    grid = make_config().grid()
    fields = FieldStore(grid)
    flags = np.zeros(grid.shape, dtype=np.int32)
    flags[4, 4, 4] = 1
    fields.set_flags(flags)
    assert fields.p_active[fields.ref_cell]


def test_swaps_exchange_handles(cavity_config, rng):
    fields = FieldStore(cavity_config.grid())
    vel, vel_iter = fields.vel, fields.vel_iter
    fields.swap_velocity_iteration()
    assert fields.vel is vel_iter and fields.vel_iter is vel

    pc, pc_iter = fields.pc, fields.pc_iter
    fields.swap_pressure_correction_iteration()
    assert fields.pc is pc_iter and fields.pc_iter is pc

    fields.vel[...] = rng.standard_normal(fields.vel.shape)
    corrected = fields.vel
    fields.finish_time_step()
    assert fields.vel_time is corrected
    assert np.array_equal(fields.vel_iter, fields.vel_time)


def test_reset_solution(cavity_config, rng):
    fields = FieldStore(cavity_config.grid())
    fields.p[...] = 1.0
    fields.pc[...] = 2.0
    fields.nu_t[...] = 3.0
    velocity = rng.standard_normal(fields.vel.shape)
    fields.reset_solution(velocity)

    for buf in (fields.vel, fields.vel_iter, fields.vel_time):
        assert np.array_equal(buf, velocity)
    assert not fields.p.any() and not fields.pc.any() and not fields.nu_t.any()


def test_read_only_handles(cavity_config):
    fields = FieldStore(cavity_config.grid())
    with pytest.raises(ValueError):
        fields.velocity[0, 1, 1, 1] = 1.0
    with pytest.raises(ValueError):
        fields.pressure[1, 1, 1] = 1.0

    snap = fields.snapshot()
    snap["pressure"][1, 1, 1] = 5.0
    assert fields.p[1, 1, 1] == 0.0


def test_shift_convention(rng):
    a = rng.standard_normal((4, 5, 6))
    assert np.array_equal(shift(a, 0, 1)[:, :, 2], a[:, :, 3])
    assert np.array_equal(shift(a, 1, -1)[:, 2, :], a[:, 1, :])
    assert np.array_equal(shift(a, 2, 1)[1], a[2])
