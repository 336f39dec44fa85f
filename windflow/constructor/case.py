"""
Case definition and setup.
Ready-made configurations for common simulation cases.
"""

from .config import FluidSimConfig
from .properties.fluid import FluidProperties


def create_lid_driven_cavity(n=10, reynolds_number=100.0, lid_velocity=1.0, size=1.0, cfl=0.5, **overrides):
    """
    Factory method to create a lid-driven cavity configuration.

    The top (YN) face moves with ``lid_velocity`` in x, every other face is a
    no-slip wall and all pressure faces are zero-gradient.

    Parameters:
    -----------
    n : int
        Cells per axis (including the boundary layer)
    reynolds_number : float
        Reynolds number based on the lid velocity and the cavity size
    lid_velocity : float
        Lid speed
    size : float
        Cavity edge length
    cfl : float
        CFL number used to choose the time step
    **overrides
        Any further FluidSimConfig fields

    Returns:
    --------
    FluidSimConfig
        Configuration of the cavity
    """
    fluid = FluidProperties(density=1.0, reynolds_number=reynolds_number,
                            characteristic_velocity=lid_velocity, characteristic_length=size)
    dx = size / n
    params = dict(
        physical_domain_size=(size, size, size),
        grid_res_x=n,
        dt=cfl * dx / lid_velocity,
        mu=fluid.get_viscosity(),
        density=fluid.get_density(),
        u_max=lid_velocity,
        velocity_values={'yn': (lid_velocity, 0.0, 0.0)},
    )
    params.update(overrides)
    return FluidSimConfig(**params)


def create_wind_tunnel(size=(10.0, 5.0, 10.0), n=40, wind_speed=1.0, log_profile=False, **overrides):
    """
    Factory method to create an open-air wind tunnel configuration.

    Inflow on X0, zero-gradient outflow with a fixed reference pressure on XN,
    symmetry on the sides and the top, no-slip ground on Y0.
    """
    dx = size[0] / n
    params = dict(
        physical_domain_size=size,
        grid_res_x=n,
        dt=0.5 * dx / max(wind_speed, 1e-12),
        wind_speed=wind_speed,
        u_max=wind_speed,
        inflow_type='log' if log_profile else 'constant',
        face_interpolation='rhie_chow',
        velocity_bc={'x0': 'fixed_value', 'xn': 'zero_gradient', 'y0': 'fixed_value',
                     'yn': 'symmetry', 'z0': 'symmetry', 'zn': 'symmetry'},
        pressure_bc={'xn': 'fixed_value'},
    )
    params.update(overrides)
    return FluidSimConfig(**params)
