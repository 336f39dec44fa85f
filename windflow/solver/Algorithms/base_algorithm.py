"""
Base algorithm for the stepping wind solvers.

This module provides the Step Scheduler shared by SIMPLE and PISO: field
initialisation, obstacle-mask handling, boundary conditions and the
resumable state machine

    IDLE -> TURBULENCE_CLOSURE -> MOMENTUM_PREDICT -> PRESSURE_CORRECT -> FINISHED -> IDLE

driven by repeated calls to ``step()`` under a wall-clock budget.
"""

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum, auto

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from ...constructor.boundary_conditions import BoundaryConditionManager
from ...constructor.config import FaceInterpolation, GridType, InflowType, SolverType, TurbulenceModel
from ...constructor.obstacles import default_mask, fill_enclosed_cavities, validate_mask
from ...core.fields import FieldStore
from ...exceptions import ConfigurationError, SolverDivergenceError, UnsupportedConfigurationError
from ...utils.profiler import Profiler
from ..face_interpolation import flux_divergence, linear_face_flux, rhie_chow_face_flux, staggered_flux_divergence
from ..kernels import get_backend
from ..momentum_solver.jacobi_solver import JacobiMomentumSolver
from ..pressure_solver.jacobi import JacobiSolver
from ..relaxation import TimeBudget
from ..turbulence.smagorinsky import SmagorinskyModel
from ..velocity_solver.standard import CollocatedVelocityUpdater, StaggeredVelocityUpdater

log = logging.getLogger(__name__)


class Stage(Enum):
    IDLE = auto()
    TURBULENCE_CLOSURE = auto()
    MOMENTUM_PREDICT = auto()
    PRESSURE_CORRECT = auto()
    FINISHED = auto()


class BaseAlgorithm(ABC):
    """
    Base class for the stepping algorithms.

    Owns the field store and the stage solvers of one simulation and
    sequences them across ``step()`` calls. Simulation time and the step
    counter are mutated only by the FINISHED -> IDLE transition.

    All specific algorithms (SIMPLE, PISO) inherit from this class and
    provide ``run_correctors``.
    """

    supports_staggered_grid = True

    def __init__(self, config, flags=None):
        """
        Initialize the algorithm.

        Parameters:
        -----------
        config : FluidSimConfig
            Run configuration
        flags : array_like, optional
            Flat obstacle mask of length Nx*Ny*Nz (0 = fluid). Defaults to the
            mask described by ``config.solid_type``.
        """
        self.check_supported(config)
        self.backend = get_backend(config.backend)
        self._setup(config, flags)

    @classmethod
    def check_supported(cls, config):
        """Reject combinations of grid arrangement and scheme that are not implemented."""
        if config.grid_type != GridType.STAGGERED:
            return
        if config.solver_type == SolverType.PISO or not cls.supports_staggered_grid:
            raise UnsupportedConfigurationError("PISO is not supported on staggered grids")
        if config.turbulence_model == TurbulenceModel.SMAGORINSKY:
            raise UnsupportedConfigurationError("The Smagorinsky model is not supported on staggered grids")
        if config.face_interpolation == FaceInterpolation.RHIE_CHOW:
            raise UnsupportedConfigurationError(
                "Rhie-Chow interpolation applies to collocated grids only; use face_interpolation='linear'"
            )

    def _setup(self, config, flags):
        grid = config.grid()
        if flags is None:
            mask = default_mask(config, grid)
        else:
            mask = validate_mask(flags, grid)

        self.config = config
        self.grid = grid
        self.fluid = config.fluid
        self.bc_manager = BoundaryConditionManager.from_config(config)
        self.fields = FieldStore(grid)

        self.turbulence = SmagorinskyModel(config, grid) if config.turbulence_model == TurbulenceModel.SMAGORINSKY else None
        self.momentum_solver = JacobiMomentumSolver(config, grid, self.backend, self.bc_manager)
        self.pressure_solver = JacobiSolver(config, grid, self.backend, self.bc_manager)
        if grid.staggered:
            self.velocity_updater = StaggeredVelocityUpdater(grid, self.bc_manager)
        else:
            self.velocity_updater = CollocatedVelocityUpdater(grid, self.bc_manager)
        self.profiler = Profiler(self.__class__.__name__, grid, self.fluid)

        self.wind_speed = config.wind_speed
        self.time = 0.0
        self.step_count = 0
        self._report_setup()
        self.init_flags(mask)

    def _report_setup(self):
        nx, ny, nz = self.grid.resolution
        velocity = max(self.config.u_max, self.wind_speed)
        cfl = self.grid.cfl(velocity)
        log.info(f"{self.__class__.__name__}: grid {nx} x {ny} x {nz} "
                 f"({self.config.grid_type.name.lower()}), dx = {self.grid.dx:.4g}, dt = {self.grid.dt:.4g}")
        log.info(f"CFL = {cfl:.3f} at |u| = {velocity:.3g}, Reynolds number = {self.fluid.get_reynolds_number():.1f}")
        if cfl >= 1.0:
            log.warning(f"CFL number {cfl:.3f} >= 1, reduce dt or increase dx")
        log.debug(f"Momentum solver: {self.momentum_solver.get_solver_info()}")
        log.debug(f"Pressure solver: {self.pressure_solver.get_solver_info()}")

    # ------------------------------------------------------------------
    # Re-initialisation
    # ------------------------------------------------------------------

    def init_flags(self, flags):
        """
        Install a new obstacle mask and re-initialise all fields.

        Parameters:
        -----------
        flags : array_like
            Obstacle mask, flat (length Nx*Ny*Nz) or shaped (Nz, Ny, Nx)
        """
        mask = validate_mask(flags, self.grid)
        if self.config.fill_enclosed_cavities:
            mask = fill_enclosed_cavities(mask)
        self.fields.set_flags(mask)
        self.init_fields()

    def inflow_profile(self):
        """
        Streamwise inflow velocity per vertical cell index, or None without wind.

        CONSTANT gives the wind speed at every height; LOG gives
        U*ln(y/z0)/ln(y_ref/z0) above the roughness length and 0 below it.
        """
        if self.wind_speed <= 0.0:
            return None
        ny = self.grid.resolution[1]
        if self.config.inflow_type == InflowType.LOG:
            z0 = self.config.inflow_roughness
            height = self.grid.cell_centres(1) - self.grid.origin[1]
            return self.wind_speed * np.log(np.maximum(height, z0) / z0) / math.log(self.config.reference_height / z0)
        return np.full(ny, self.wind_speed)

    def init_fields(self):
        """Set velocity to the inflow profile, zero pressure and corrections, reset the scheduler."""
        fields = self.fields
        profile = self.inflow_profile()
        velocity = np.zeros((3,) + self.grid.vel_shape)
        if profile is not None:
            ny = profile.shape[0]
            velocity[0][:, :ny, :] = profile[np.newaxis, :, np.newaxis]
        fields.reset_solution(velocity)
        self._impose_boundaries(profile)
        self._reset_scheduler()
        log.info("Fields initialised")

    def init_fields_from_background(self, background):
        """
        Initialise velocity and pressure by trilinear sampling of another solver's fields.

        Points outside the background domain are extrapolated.

        Parameters:
        -----------
        background : BaseAlgorithm
            Solver whose velocity@t and pressure are sampled (collocated grids only)
        """
        if self.grid.staggered or background.grid.staggered:
            raise UnsupportedConfigurationError("Background initialisation is only supported on collocated grids")
        bg = background.grid
        points = tuple(bg.cell_centres(c) for c in (2, 1, 0))
        targets = np.stack(np.meshgrid(*(self.grid.cell_centres(c) for c in (2, 1, 0)), indexing="ij"), axis=-1)

        def sample(values):
            return RegularGridInterpolator(points, values, bounds_error=False, fill_value=None)(targets)

        velocity = np.stack([sample(background.fields.vel_time[c]) for c in range(3)])
        pressure = sample(background.fields.p)

        self.fields.reset_solution(velocity)
        self.fields.p[...] = pressure
        self._impose_boundaries(self.inflow_profile())
        self._reset_scheduler()
        log.info(f"Fields initialised from a {bg.resolution[0]} x {bg.resolution[1]} x {bg.resolution[2]} background solution")

    def _impose_boundaries(self, profile):
        fields = self.fields
        self.bc_manager.fill_boundary_buffers(fields, profile)
        for vel in (fields.vel_time, fields.vel, fields.vel_iter):
            self.bc_manager.apply_velocity_boundary_conditions(vel, fields, self.grid)
        self.bc_manager.apply_pressure_boundary_conditions(fields.p, fields, self.grid)
        if not fields.staggered:
            linear_face_flux(fields.vel_time, fields, self.grid, out=fields.face_flux)

    def set_fixed_value_velocity_bc(self, wind_speed=None):
        """
        Update the inflow speed and refresh the boundary-face buffers.

        Parameters:
        -----------
        wind_speed : float, optional
            New inflow speed; None keeps the current one
        """
        if wind_speed is not None:
            if not (math.isfinite(wind_speed) and wind_speed >= 0.0):
                raise ConfigurationError(f"wind_speed must be non-negative and finite, got {wind_speed!r}")
            self.wind_speed = float(wind_speed)
        fields = self.fields
        self.bc_manager.fill_boundary_buffers(fields, self.inflow_profile())
        for vel in (fields.vel_time, fields.vel, fields.vel_iter):
            self.bc_manager.apply_velocity_boundary_conditions(vel, fields, self.grid)
        log.info(f"Inflow speed set to {self.wind_speed}")

    def change_domain_position(self, origin=None, flags=None):
        """Move the domain; keeps the current mask unless a new one is given."""
        if origin is None:
            origin = self.config.domain_origin
        if flags is None:
            flags = self.fields.flags
        self._setup(self.config.with_changes(domain_origin=origin), flags)

    def change_domain_size(self, size, flags=None):
        """Resize the domain; reallocates every buffer for the new grid."""
        self._setup(self.config.with_changes(physical_domain_size=size), flags)

    def _reset_scheduler(self):
        self.stage = Stage.IDLE
        self.iters = 0
        self.ready = False
        self.momentum_iterations = 0
        self.pressure_iterations = 0
        self.last_residuals = {"momentum": None, "pressure": None}

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self):
        """
        Advance the solver by as much work as the time budget allows.

        Returns:
        --------
        bool
            True when a full time step completed during this call, False when
            work is still in progress (call again to resume)
        """
        budget = TimeBudget(self.config.time_budget, self.config.budget_check_interval)
        fields = self.fields
        while True:
            if self.stage == Stage.IDLE:
                self.ready = False
                self.iters = 0
                self.stage = Stage.TURBULENCE_CLOSURE if self.turbulence is not None else Stage.MOMENTUM_PREDICT

            elif self.stage == Stage.TURBULENCE_CLOSURE:
                self.profiler.start_section()
                self.turbulence.update(fields)
                self.profiler.end_section("turbulence")
                self.stage = Stage.MOMENTUM_PREDICT

            elif self.stage == Stage.MOMENTUM_PREDICT:
                self.profiler.start_section()
                if self.iters == 0:
                    self._prepare_momentum()
                finished, self.iters, residual = self.momentum_solver.run(fields, self.iters, budget)
                self.profiler.end_section("momentum")
                self._record_residual("momentum", residual)
                if not finished:
                    log.debug(f"Momentum slice ended at iteration {self.iters}")
                    return False
                self.momentum_iterations = self.iters
                self.iters = 0
                self.stage = Stage.PRESSURE_CORRECT

            elif self.stage == Stage.PRESSURE_CORRECT:
                self.profiler.start_section()
                if self.iters == 0:
                    self._prepare_pressure_correction()
                finished, self.iters, residual = self.pressure_solver.run(fields, self.iters, budget)
                self._record_residual("pressure", residual)
                if not finished:
                    self.profiler.end_section("pressure")
                    log.debug(f"Pressure slice ended at iteration {self.iters}")
                    return False
                self._complete_pressure_correction()
                self.profiler.end_section("pressure")
                self.pressure_iterations = self.iters
                self.iters = 0
                self.stage = Stage.FINISHED

            elif self.stage == Stage.FINISHED:
                self.profiler.start_section()
                self.run_correctors()
                self.profiler.end_section("correctors")
                self._finish_time_step()
                return True

    def solve(self, num_steps):
        """
        Call ``step()`` until ``num_steps`` time steps have completed.

        Returns:
        --------
        BaseAlgorithm
            self, for chaining
        """
        self.profiler.start()
        completed = 0
        while completed < num_steps:
            if self.step():
                completed += 1
        self.profiler.end()
        return self

    def _record_residual(self, name, residual):
        if residual is not None:
            self.last_residuals[name] = residual

    def _prepare_momentum(self):
        fields = self.fields
        if not fields.staggered and self.config.face_interpolation == FaceInterpolation.LINEAR:
            linear_face_flux(fields.vel_time, fields, self.grid, out=fields.face_flux)
        self.momentum_solver.assemble(fields)

    def _prepare_pressure_correction(self):
        fields = self.fields
        if not fields.staggered:
            if self.config.face_interpolation == FaceInterpolation.RHIE_CHOW:
                rhie_chow_face_flux(fields.vel, fields.p, fields.mom_D, fields, self.grid, out=fields.face_flux)
            else:
                linear_face_flux(fields.vel, fields, self.grid, out=fields.face_flux)
        self.pressure_solver.assemble(fields)

    def _complete_pressure_correction(self):
        fields = self.fields
        self.pressure_solver.apply_correction(fields, fields.pc)
        self.velocity_updater.update_velocity(fields, fields.pc)
        fields.zero_pressure_correction()

    def _finish_time_step(self):
        fields = self.fields
        if not (np.all(np.isfinite(fields.vel)) and np.all(np.isfinite(fields.p))):
            raise SolverDivergenceError(f"Non-finite velocity or pressure at step {self.step_count + 1}")
        fields.finish_time_step()
        self.time += self.grid.dt
        self.step_count += 1
        self.stage = Stage.IDLE
        self.ready = True
        self.profiler.record_step(self.momentum_iterations, self.pressure_iterations)

        message = f"Step {self.step_count}, t = {self.time:.4g}"
        if self.last_residuals["momentum"] is not None:
            message += f", momentum residual {self.last_residuals['momentum']:.3e}"
        if self.last_residuals["pressure"] is not None:
            message += f", pressure residual {self.last_residuals['pressure']:.3e}"
        log.info(message)

    @abstractmethod
    def run_correctors(self):
        """Extra correction passes appended after the pressure correction of every step."""
        pass

    # ------------------------------------------------------------------
    # Read-only handles and diagnostics
    # ------------------------------------------------------------------

    @property
    def velocity(self):
        """Read-only velocity@t, shape (3, Nz, Ny, Nx) (+1 per axis on staggered grids)."""
        return self.fields.velocity

    @property
    def pressure(self):
        return self.fields.pressure

    @property
    def flags(self):
        return self.fields.flag_field

    def snapshot(self):
        """Deep copies of velocity, pressure and mask for asynchronous export."""
        return self.fields.snapshot()

    @property
    def current_time(self):
        return self.time

    @property
    def current_step(self):
        return self.step_count

    def continuity_residual(self):
        """
        Largest absolute net volume outflow of any fluid cell.

        Returns:
        --------
        float
            max |sum(F_out)| over fluid interior cells
        """
        fields = self.fields
        if fields.staggered:
            divergence = staggered_flux_divergence(fields.vel_time, self.grid)
        else:
            divergence = flux_divergence(fields.face_flux)
        active = divergence[fields.p_active]
        return float(np.max(np.abs(active))) if active.size else 0.0

    def save_profiling_data(self, filename=None, profile_dir='results/profiles'):
        """
        Save profiling data to a CSV file.

        Returns:
        --------
        str
            Path to the saved file
        """
        return self.profiler.save(filename, profile_dir)
