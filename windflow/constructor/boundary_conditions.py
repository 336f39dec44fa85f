"""
Boundary conditions management for windflow.

This module provides classes and utilities for managing boundary conditions
on the six faces of the box-shaped domain. Boundary values live in the
outermost layer of cells (collocated) or in the boundary faces and
tangential ghost cells (staggered); the interior sweeps never touch them.
"""

import math

import numpy as np
from enum import Enum, auto

from ..exceptions import ConfigurationError
from ..core.stencil import AXIS


class BoundaryType(Enum):
    """Enumeration of boundary condition types."""
    FIXED_VALUE = auto()
    ZERO_GRADIENT = auto()
    SYMMETRY = auto()


class BoundaryLocation(Enum):
    """Enumeration of boundary locations as (component, is_high_side)."""
    X0 = (0, False)
    XN = (0, True)
    Y0 = (1, False)
    YN = (1, True)
    Z0 = (2, False)
    ZN = (2, True)

    @property
    def component(self):
        return self.value[0]

    @property
    def is_high(self):
        return self.value[1]


QUANTITIES = ("velocity", "pressure")


def to_enum(enum_cls, value, what):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.upper()]
        except KeyError:
            raise ConfigurationError(f"Unknown {what}: {value}")
    raise ConfigurationError(f"Unknown {what}: {value!r}")


def _index(ndim, axis, idx):
    key = [slice(None)] * ndim
    key[axis] = idx
    return tuple(key)


class BoundaryCondition:
    """
    Class representing a single boundary condition.

    Attributes:
    -----------
    location : BoundaryLocation
        Location of the boundary
    type : BoundaryType
        Type of boundary condition
    values : tuple or float
        Dirichlet value, a 3-vector for velocity and a scalar for pressure
    """

    def __init__(self, location, bc_type, values=None):
        self.location = to_enum(BoundaryLocation, location, "boundary location")
        self.type = to_enum(BoundaryType, bc_type, "boundary type")
        self.values = values

    def get_value(self, default=0.0):
        """Get the Dirichlet value of the boundary condition."""
        return default if self.values is None else self.values


class BoundaryConditionManager:
    """
    Manager for all boundary conditions in a simulation.

    Holds one velocity and one pressure condition per domain face, fills the
    six boundary-face buffers of a FieldStore and applies the conditions to
    velocity, pressure and pressure-correction fields.
    """

    def __init__(self):
        """Initialize a manager with the default conditions: no-slip walls, zero-gradient pressure."""
        self.conditions = {}
        for location in BoundaryLocation:
            self.set_condition(location, "velocity", BoundaryType.FIXED_VALUE, (0.0, 0.0, 0.0))
            self.set_condition(location, "pressure", BoundaryType.ZERO_GRADIENT, 0.0)

    @classmethod
    def from_config(cls, config):
        manager = cls()
        for location in BoundaryLocation:
            key = location.name.lower()
            manager.set_condition(location, "velocity", config.velocity_bc[key], config.velocity_values[key])
            manager.set_condition(location, "pressure", config.pressure_bc[key], config.pressure_values[key])
        return manager

    def set_condition(self, location, quantity, bc_type, values=None):
        """
        Set a boundary condition.

        Parameters:
        -----------
        location : BoundaryLocation or str
            Domain face, e.g. 'x0' or BoundaryLocation.YN
        quantity : str
            'velocity' or 'pressure'
        bc_type : BoundaryType or str
            Type of boundary condition
        values : tuple or float, optional
            Dirichlet value used when bc_type is FIXED_VALUE
        """
        if quantity not in QUANTITIES:
            raise ConfigurationError(f"Unknown boundary quantity: {quantity}")
        bc = BoundaryCondition(location, bc_type, values)
        if quantity == "velocity":
            vec = tuple(float(v) for v in bc.get_value((0.0, 0.0, 0.0)))
            if len(vec) != 3 or not all(math.isfinite(v) for v in vec):
                raise ConfigurationError(f"Velocity boundary value at {bc.location.name} must be 3 finite numbers, got {values!r}")
            bc.values = vec
        else:
            value = float(bc.get_value(0.0))
            if not math.isfinite(value):
                raise ConfigurationError(f"Pressure boundary value at {bc.location.name} must be finite, got {values!r}")
            bc.values = value
        self.conditions.setdefault(bc.location, {})[quantity] = bc

    def get_condition(self, location, quantity):
        location = to_enum(BoundaryLocation, location, "boundary location")
        return self.conditions[location][quantity]

    def velocity_type(self, location):
        return self.get_condition(location, "velocity").type

    def pressure_type(self, location):
        return self.get_condition(location, "pressure").type

    def has_fixed_pressure(self):
        """True if any face fixes the pressure level."""
        return any(self.pressure_type(loc) == BoundaryType.FIXED_VALUE for loc in BoundaryLocation)

    def to_dict(self):
        """Convert boundary conditions to a dictionary format."""
        return {
            location.name.lower(): {q: (bc.type.name.lower(), bc.values) for q, bc in conds.items()}
            for location, conds in self.conditions.items()
        }

    # ------------------------------------------------------------------
    # Boundary-face buffers
    # ------------------------------------------------------------------

    def fill_boundary_buffers(self, fields, inflow_profile=None):
        """
        Populate the six velocity and pressure face buffers of ``fields``.

        Parameters:
        -----------
        fields : FieldStore
            Field store whose ``vel_bnd`` / ``pres_bnd`` buffers are written
        inflow_profile : ndarray, optional
            Streamwise velocity as a function of the vertical cell index. When
            given it replaces the x-velocity of a FIXED_VALUE X0 face.
        """
        for location in BoundaryLocation:
            vel_face = fields.vel_bnd[location]
            vel_face[...] = np.asarray(self.get_condition(location, "velocity").values).reshape(3, 1, 1)
            if (inflow_profile is not None and location == BoundaryLocation.X0
                    and self.velocity_type(location) == BoundaryType.FIXED_VALUE):
                # X faces are (Nz, Ny); profile runs along y
                ny = min(vel_face.shape[2], len(inflow_profile))
                vel_face[0][:, :ny] = inflow_profile[np.newaxis, :ny]
            fields.pres_bnd[location][...] = self.get_condition(location, "pressure").values

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def _ghost_and_neighbour(self, grid, location, normal, staggered):
        n = grid.shape[AXIS[location.component]]
        if staggered and normal:
            return (n - 1, n - 2) if location.is_high else (1, 2)
        return (n - 1, n - 2) if location.is_high else (0, 1)

    def apply_velocity_boundary_conditions(self, vel, fields, grid, correction=False):
        """
        Write boundary values into a (3, ...) velocity array in place.

        FIXED_VALUE copies the face buffer, ZERO_GRADIENT copies the adjacent
        interior value and SYMMETRY copies tangential components while zeroing
        the normal one. For a velocity correction field FIXED_VALUE and SYMMETRY
        faces receive zero.
        """
        staggered = fields.staggered
        for location in BoundaryLocation:
            c = location.component
            axis = AXIS[c]
            bc_type = self.velocity_type(location)
            bnd = fields.vel_bnd[location]
            for d in range(3):
                normal = d == c
                ghost, nb = self._ghost_and_neighbour(grid, location, normal, staggered)
                comp = vel[d]
                g = _index(3, axis, ghost)
                if correction and bc_type != BoundaryType.ZERO_GRADIENT:
                    comp[g] = 0.0
                elif bc_type == BoundaryType.FIXED_VALUE:
                    comp[g] = bnd[d]
                elif bc_type == BoundaryType.SYMMETRY and normal:
                    comp[g] = 0.0
                else:
                    comp[g] = comp[_index(3, axis, nb)]
        vel[fields.vel_solid] = 0.0

    def apply_pressure_boundary_conditions(self, p, fields, grid, correction=False):
        """
        Write boundary values into a pressure (or pressure-correction) array in place.

        For a correction field FIXED_VALUE faces receive zero, every other kind
        copies the adjacent interior value (Neumann).
        """
        for location in BoundaryLocation:
            axis = AXIS[location.component]
            ghost, nb = self._ghost_and_neighbour(grid, location, False, False)
            g = _index(3, axis, ghost)
            if self.pressure_type(location) == BoundaryType.FIXED_VALUE:
                p[g] = 0.0 if correction else fields.pres_bnd[location]
            else:
                p[g] = p[_index(3, axis, nb)]
