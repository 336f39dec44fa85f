"""Run configuration for the finite-volume wind solver.

Structure:
- enums for every scheme / model selector
- FluidSimConfig: immutable per-run parameters (consumed, never mutated, by the solver)
- GridInfo: scalars derived from a configuration (resolution, spacing, D, ...)
"""

import math
from dataclasses import dataclass, field, asdict, replace, fields as dc_fields
from enum import Enum, auto
from typing import Optional, Tuple

import numpy as np
import yaml

from .boundary_conditions import BoundaryLocation, BoundaryType, to_enum
from .properties.fluid import FluidProperties
from ..exceptions import ConfigurationError


class GridType(Enum):
    COLLOCATED = auto()
    STAGGERED = auto()


class SolverType(Enum):
    SIMPLE = auto()
    PISO = auto()


class ConvectionScheme(Enum):
    CDS = auto()  # central differencing
    UDS = auto()  # first-order upwind


class FaceInterpolation(Enum):
    RHIE_CHOW = auto()
    LINEAR = auto()


class TurbulenceModel(Enum):
    NONE = auto()
    SMAGORINSKY = auto()


class InflowType(Enum):
    CONSTANT = auto()
    LOG = auto()


class SolidType(Enum):
    NO_SOLID = auto()
    BOX = auto()


class MomentumFormulation(Enum):
    ACCELERATED = auto()  # D, b, a_nb assembled once per time step
    NAIVE = auto()  # re-assembled inside every sweep


_ENUM_FIELDS = {
    "grid_type": GridType,
    "solver_type": SolverType,
    "convection_scheme": ConvectionScheme,
    "face_interpolation": FaceInterpolation,
    "turbulence_model": TurbulenceModel,
    "inflow_type": InflowType,
    "solid_type": SolidType,
    "momentum_formulation": MomentumFormulation,
}

_FACES = tuple(loc.name.lower() for loc in BoundaryLocation)


def _default_velocity_bc():
    return {face: BoundaryType.FIXED_VALUE for face in _FACES}


def _default_pressure_bc():
    return {face: BoundaryType.ZERO_GRADIENT for face in _FACES}


def _default_velocity_values():
    return {face: (0.0, 0.0, 0.0) for face in _FACES}


def _default_pressure_values():
    return {face: 0.0 for face in _FACES}


@dataclass(frozen=True)
class GridInfo:
    """Grid extents and derived scalars of one configuration."""

    resolution: Tuple[int, int, int]  # (Nx, Ny, Nz)
    staggered: bool
    dx: float
    dt: float
    nu: float
    density: float
    origin: Tuple[float, float, float]

    @property
    def shape(self):
        """Pressure-grid array shape (Nz, Ny, Nx)."""
        nx, ny, nz = self.resolution
        return (nz, ny, nx)

    @property
    def vel_shape(self):
        return tuple(n + 1 for n in self.shape) if self.staggered else self.shape

    @property
    def n_cells(self):
        nx, ny, nz = self.resolution
        return nx * ny * nz

    @property
    def ds(self):
        return self.dx * self.dx

    @property
    def dv(self):
        return self.dx * self.dx * self.dx

    @property
    def D(self):
        """Uniform momentum diagonal dv/dt + 6 nu ds/dx."""
        return self.dv / self.dt + 6.0 * self.nu * self.ds / self.dx

    @property
    def D_inv(self):
        return 1.0 / self.D

    def cell_centres(self, c):
        """Physical coordinates of cell centres along component c."""
        return self.origin[c] + (np.arange(self.resolution[c]) + 0.5) * self.dx

    def cfl(self, velocity):
        return velocity * self.dt / self.dx


@dataclass(frozen=True)
class FluidSimConfig:
    """User-defined parameters for one fluid simulation."""

    # Domain and fluid
    physical_domain_size: Tuple[float, float, float] = (10.0, 5.0, 10.0)
    grid_res_x: int = 100
    domain_origin: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    dt: float = 0.1
    mu: float = 0.005  # dynamic viscosity
    density: float = 1.0
    u_max: float = 0.5  # expected peak velocity, used for the CFL report
    external_force: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    # Schemes
    grid_type: GridType = GridType.COLLOCATED
    solver_type: SolverType = SolverType.SIMPLE
    piso_num_correctors: int = 2
    convection_scheme: ConvectionScheme = ConvectionScheme.CDS
    face_interpolation: FaceInterpolation = FaceInterpolation.RHIE_CHOW
    momentum_formulation: MomentumFormulation = MomentumFormulation.ACCELERATED
    backend: str = "numpy"

    # Turbulence
    turbulence_model: TurbulenceModel = TurbulenceModel.NONE
    smagorinsky_constant: float = 0.15
    wall_function: bool = True
    wall_roughness: float = 0.01
    karman_constant: float = 0.4

    # Boundaries and inflow
    velocity_bc: dict = field(default_factory=_default_velocity_bc)
    pressure_bc: dict = field(default_factory=_default_pressure_bc)
    velocity_values: dict = field(default_factory=_default_velocity_values)
    pressure_values: dict = field(default_factory=_default_pressure_values)
    inflow_type: InflowType = InflowType.CONSTANT
    wind_speed: float = 0.0
    inflow_roughness: float = 1.0
    reference_height: float = 10.0

    # Relaxation loops
    cal_residual: bool = False
    vel_residual_check_interval: int = 10
    vel_tolerance: float = 1e-6
    vel_max_iter: int = 50
    pres_residual_check_interval: int = 20
    pres_tolerance: float = 1e-3
    pres_max_iter: int = 400
    pres_relaxation: float = 0.8

    # Scheduling
    time_budget: Optional[float] = 0.03  # seconds per step() call, None = unbounded
    budget_check_interval: int = 40

    # Obstacles
    solid_type: SolidType = SolidType.NO_SOLID
    box_start: Tuple[float, float, float] = (0.4, 0.4, 0.4)
    box_end: Tuple[float, float, float] = (0.6, 0.6, 0.6)
    fill_enclosed_cavities: bool = True

    def __post_init__(self):
        for name, enum_cls in _ENUM_FIELDS.items():
            object.__setattr__(self, name, to_enum(enum_cls, getattr(self, name), name.replace("_", " ")))
        for name in ("physical_domain_size", "domain_origin", "external_force", "box_start", "box_end"):
            object.__setattr__(self, name, self._vector(name))

        velocity_bc = {**_default_velocity_bc(), **{k.lower(): v for k, v in self.velocity_bc.items()}}
        pressure_bc = {**_default_pressure_bc(), **{k.lower(): v for k, v in self.pressure_bc.items()}}
        velocity_values = {**_default_velocity_values(), **{k.lower(): v for k, v in self.velocity_values.items()}}
        pressure_values = {**_default_pressure_values(), **{k.lower(): v for k, v in self.pressure_values.items()}}
        for mapping in (velocity_bc, pressure_bc, velocity_values, pressure_values):
            unknown = set(mapping) - set(_FACES)
            if unknown:
                raise ConfigurationError(f"Unknown boundary faces: {sorted(unknown)}")
        object.__setattr__(self, "velocity_bc", {k: to_enum(BoundaryType, v, "boundary type") for k, v in velocity_bc.items()})
        object.__setattr__(self, "pressure_bc", {k: to_enum(BoundaryType, v, "boundary type") for k, v in pressure_bc.items()})
        object.__setattr__(self, "velocity_values", velocity_values)
        object.__setattr__(self, "pressure_values", pressure_values)
        self._validate()

    def _vector(self, name):
        value = getattr(self, name)
        try:
            vec = tuple(float(v) for v in value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} must be a 3-vector, got {value!r}")
        if len(vec) != 3 or not all(math.isfinite(v) for v in vec):
            raise ConfigurationError(f"{name} must be a finite 3-vector, got {value!r}")
        return vec

    def _validate(self):
        positive = ("dt", "mu", "density", "smagorinsky_constant", "karman_constant",
                    "inflow_roughness", "reference_height", "wall_roughness")
        for name in positive:
            value = getattr(self, name)
            if not (isinstance(value, (int, float)) and math.isfinite(value) and value > 0):
                raise ConfigurationError(f"{name} must be positive and finite, got {value!r}")
        for name in ("u_max", "wind_speed", "vel_tolerance", "pres_tolerance"):
            value = getattr(self, name)
            if not (isinstance(value, (int, float)) and math.isfinite(value) and value >= 0):
                raise ConfigurationError(f"{name} must be non-negative and finite, got {value!r}")
        if any(s <= 0 for s in self.physical_domain_size):
            raise ConfigurationError(f"physical_domain_size must be positive, got {self.physical_domain_size}")
        for name in ("grid_res_x", "piso_num_correctors", "vel_residual_check_interval", "vel_max_iter",
                     "pres_residual_check_interval", "pres_max_iter", "budget_check_interval"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if not 0.0 < self.pres_relaxation <= 1.0:
            raise ConfigurationError(f"pres_relaxation must be in (0, 1], got {self.pres_relaxation}")
        if self.time_budget is not None and not (math.isfinite(self.time_budget) and self.time_budget >= 0):
            raise ConfigurationError(f"time_budget must be None or a non-negative number, got {self.time_budget!r}")
        for face, value in self.velocity_values.items():
            try:
                vec = [float(v) for v in value]
            except (TypeError, ValueError):
                raise ConfigurationError(f"Velocity value at {face} must be a 3-vector, got {value!r}")
            if len(vec) != 3 or not all(math.isfinite(v) for v in vec):
                raise ConfigurationError(f"Velocity value at {face} must be 3 finite numbers, got {value!r}")
        for face, value in self.pressure_values.items():
            if not (isinstance(value, (int, float)) and math.isfinite(value)):
                raise ConfigurationError(f"Pressure value at {face} must be a finite number, got {value!r}")
        if any(not 0.0 <= s < e <= 1.0 for s, e in zip(self.box_start, self.box_end)):
            raise ConfigurationError(f"box_start/box_end must be fractions with start < end, got {self.box_start}, {self.box_end}")

        resolution = self.resolution
        if min(resolution) < 3:
            raise ConfigurationError(f"Grid resolution must be at least 3 cells per axis, got {resolution}")
        dx = self.physical_domain_size[0] / self.grid_res_x
        if (self.turbulence_model == TurbulenceModel.SMAGORINSKY and self.wall_function
                and self.wall_roughness >= 0.5 * dx):
            raise ConfigurationError(f"wall_roughness ({self.wall_roughness}) must be below half a cell ({0.5 * dx})")

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def resolution(self):
        dx = self.physical_domain_size[0] / self.grid_res_x
        ny = int(round(self.physical_domain_size[1] / dx))
        nz = int(round(self.physical_domain_size[2] / dx))
        return (self.grid_res_x, ny, nz)

    @property
    def fluid(self):
        return FluidProperties(
            density=self.density,
            viscosity=self.mu,
            characteristic_velocity=max(self.u_max, self.wind_speed),
            characteristic_length=self.physical_domain_size[1],
        )

    def grid(self):
        """Derive the grid for this configuration."""
        return GridInfo(
            resolution=self.resolution,
            staggered=self.grid_type == GridType.STAGGERED,
            dx=self.physical_domain_size[0] / self.grid_res_x,
            dt=self.dt,
            nu=self.fluid.kinematic_viscosity,
            density=self.density,
            origin=self.domain_origin,
        )

    def with_changes(self, **changes):
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data):
        """
        Build a configuration from a plain mapping.

        Boundary conditions may be given either through the flat ``velocity_bc``
        style keys or through a ``boundaries`` section::

            boundaries:
              yn:
                velocity: {type: fixed_value, value: [1.0, 0.0, 0.0]}
                pressure: {type: zero_gradient}
        """
        data = dict(data)
        known = {f.name for f in dc_fields(cls)}
        boundaries = data.pop("boundaries", None) or {}
        for face, face_bcs in boundaries.items():
            face = face.lower()
            for quantity, bc in (face_bcs or {}).items():
                if quantity not in ("velocity", "pressure"):
                    raise ConfigurationError(f"Unknown boundary quantity '{quantity}' at face {face}")
                data.setdefault(f"{quantity}_bc", {})[face] = bc.get("type", "fixed_value")
                if "value" in bc:
                    data.setdefault(f"{quantity}_values", {})[face] = bc["value"]
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_dict(self):
        out = asdict(self)
        for key, value in out.items():
            if isinstance(value, Enum):
                out[key] = value.name.lower()
        for key in ("velocity_bc", "pressure_bc"):
            out[key] = {face: kind.name.lower() for face, kind in out[key].items()}
        return out
