import logging

import numpy as np

from .stencil import AXIS, shift, interior_mask, pad_to
from ..constructor.boundary_conditions import BoundaryLocation

log = logging.getLogger(__name__)


def _face_shape(shape, axis):
    return tuple(n for a, n in enumerate(shape) if a != axis)


def _index_mask(shape, axis, idx, cells=None):
    """True on the plane ``idx`` along ``axis`` restricted to interior tangential cell indices."""
    mask = np.zeros(shape, dtype=bool)
    key = [slice(1, n - 1) for n in (cells or shape)]
    key[axis] = idx
    mask[tuple(key)] = True
    return mask


class FieldStore:
    """
    Holds every grid-indexed buffer of one solver instance.

    Field categories:
    - velocity (3, ...): current, previous-iteration, previous-time-step, correction
    - pressure: current (= value at the previous time step, updated in place),
      correction, correction at the previous iteration
    - coefficients: momentum a_nb / D / b and pressure-correction a' / b'
    - face fluxes through the "+" face of every cell (collocated grids)
    - turbulence: cell and face eddy viscosity, deferred LES source
    - obstacle mask and the masks derived from it
    - six velocity and six pressure boundary-face buffers

    Relaxed quantities are exchanged with the swap_* methods (handle exchange,
    never a copy). On exit from every relaxation loop the up-to-date value is
    in ``vel`` / ``pc``; after a completed time step it is in ``vel_time``.
    """

    def __init__(self, grid):
        self.grid = grid
        self.staggered = grid.staggered
        shape = grid.shape
        vshape = grid.vel_shape

        # === Velocity ===
        self.vel = np.zeros((3,) + vshape)
        self.vel_iter = np.zeros((3,) + vshape)
        self.vel_time = np.zeros((3,) + vshape)
        self.vel_corr = np.zeros((3,) + vshape)

        # === Pressure ===
        self.p = np.zeros(shape)
        self.pc = np.zeros(shape)
        self.pc_iter = np.zeros(shape)

        # === Face fluxes (collocated) ===
        self.face_flux = None if self.staggered else np.zeros((3,) + shape)

        # === Coefficients ===
        self.mom_a_nb = np.zeros((3, 6) + vshape)
        self.mom_D = np.full((3,) + vshape, grid.D)
        self.mom_b = np.zeros((3,) + vshape)
        self.pc_a_face = np.zeros((3,) + vshape)
        self.pc_a_nb = np.zeros((6,) + shape)
        self.pc_a_p = np.ones(shape)
        self.pc_b = np.zeros(shape)

        # === Turbulence ===
        self.nu_t = np.zeros(shape)
        self.nu_t_face = np.zeros((3,) + shape)
        self.les_source = np.zeros((3,) + vshape)

        # === Boundary-face buffers ===
        self.vel_bnd = {}
        self.pres_bnd = {}
        for location in BoundaryLocation:
            axis = AXIS[location.component]
            self.vel_bnd[location] = np.zeros((3,) + _face_shape(vshape, axis))
            self.pres_bnd[location] = np.zeros(_face_shape(shape, axis))

        self.set_flags(np.zeros(shape, dtype=np.int32))

    # ------------------------------------------------------------------
    # Obstacle mask
    # ------------------------------------------------------------------

    def set_flags(self, flags):
        """
        Store an (Nz, Ny, Nx) obstacle mask and derive the classification masks.

        Face masks describe the "+" face of each cell on collocated grids and the
        face at the velocity index (the "-" face of cell i) on staggered grids.
        """
        shape = self.grid.shape
        vshape = self.grid.vel_shape
        self.flags = flags
        self.solid = flags != 0
        self.p_active = interior_mask(shape) & ~self.solid

        self.vel_solid = np.zeros((3,) + vshape, dtype=bool)
        self.vel_active = np.zeros((3,) + vshape, dtype=bool)
        self.face_interior = np.zeros((3,) + vshape, dtype=bool)
        self.face_bnd_lo = np.zeros((3,) + vshape, dtype=bool)
        self.face_bnd_hi = np.zeros((3,) + vshape, dtype=bool)

        for c in range(3):
            axis = AXIS[c]
            n = shape[axis]
            if self.staggered:
                solid = np.pad(self.solid, [(0, 1)] * 3)
                fluid = np.pad(self.p_active, [(0, 1)] * 3)
                face_solid = solid | shift(solid, c, -1)
                self.vel_solid[c] = face_solid
                between_fluid = fluid & shift(fluid, c, -1)
                self.face_interior[c] = between_fluid
                self.vel_active[c] = between_fluid
                self.face_bnd_lo[c] = _index_mask(vshape, axis, 1, shape) & ~face_solid
                self.face_bnd_hi[c] = _index_mask(vshape, axis, n - 1, shape) & ~face_solid
            else:
                self.vel_solid[c] = self.solid
                self.vel_active[c] = self.p_active
                self.face_interior[c] = self.p_active & shift(self.p_active, c, 1)
                lo_ghost = _index_mask(shape, axis, 0) & ~self.solid
                hi_ghost = _index_mask(shape, axis, n - 1) & ~self.solid
                self.face_bnd_lo[c] = lo_ghost & shift(self.p_active, c, 1)
                self.face_bnd_hi[c] = self.p_active & shift(hi_ghost, c, 1)

        nz, ny, nx = shape
        centre = (nz // 2, ny // 2, nx // 2)
        if self.p_active[centre]:
            self.ref_cell = centre
        else:
            candidates = np.argwhere(self.p_active)
            self.ref_cell = tuple(int(i) for i in candidates[0]) if len(candidates) else centre
            log.warning(f"Centre cell {centre} is solid, pressure reference moved to {self.ref_cell}")

    def padded(self, a):
        """Pressure-grid array on the velocity grid (identity on collocated grids)."""
        return pad_to(a, self.grid.vel_shape) if self.staggered else a

    # ------------------------------------------------------------------
    # Swaps
    # ------------------------------------------------------------------

    def swap_velocity_iteration(self):
        self.vel, self.vel_iter = self.vel_iter, self.vel

    def swap_pressure_correction_iteration(self):
        self.pc, self.pc_iter = self.pc_iter, self.pc

    def zero_pressure_correction(self):
        self.pc.fill(0.0)
        self.pc_iter.fill(0.0)

    def finish_time_step(self):
        """Promote the corrected velocity to velocity@t and seed the next iteration with it."""
        self.vel_time, self.vel = self.vel, self.vel_time
        np.copyto(self.vel_iter, self.vel_time)

    def reset_solution(self, velocity):
        """Set velocity@t and both iteration buffers, zero pressure and corrections."""
        np.copyto(self.vel_time, velocity)
        np.copyto(self.vel, velocity)
        np.copyto(self.vel_iter, velocity)
        self.vel_corr.fill(0.0)
        self.p.fill(0.0)
        self.zero_pressure_correction()
        self.nu_t.fill(0.0)
        self.nu_t_face.fill(0.0)
        self.les_source.fill(0.0)

    # ------------------------------------------------------------------
    # Read-only handles
    # ------------------------------------------------------------------

    @staticmethod
    def _read_only(a):
        view = a.view()
        view.flags.writeable = False
        return view

    @property
    def velocity(self):
        return self._read_only(self.vel_time)

    @property
    def pressure(self):
        return self._read_only(self.p)

    @property
    def flag_field(self):
        return self._read_only(self.flags)

    def snapshot(self):
        return {
            "velocity": self.vel_time.copy(),
            "pressure": self.p.copy(),
            "flags": self.flags.copy(),
        }
