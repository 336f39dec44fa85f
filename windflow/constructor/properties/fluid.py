"""
Fluid properties including viscosity, density, etc.
"""

import math

from ...exceptions import ConfigurationError


class FluidProperties:
    """
    Class to store and manage fluid properties.
    """

    def __init__(self, density=1.0, viscosity=None, reynolds_number=None, characteristic_velocity=1.0, characteristic_length=1.0):
        """
        Initialize fluid properties.

        Parameters:
        -----------
        density : float
            Fluid density
        viscosity : float, optional
            Dynamic viscosity. If not provided, calculated from Reynolds number.
        reynolds_number : float, optional
            Reynolds number. Required if viscosity is not provided.
        characteristic_velocity : float, optional
            Characteristic velocity for Reynolds number calculation
        characteristic_length : float, optional
            Characteristic length for Reynolds number calculation
        """
        if not (math.isfinite(density) and density > 0):
            raise ConfigurationError(f"Density must be positive and finite, got {density}")
        self.density = density
        self.characteristic_velocity = characteristic_velocity
        self.characteristic_length = characteristic_length
        self.reynolds_number = reynolds_number

        if viscosity is None:
            if reynolds_number is None:
                raise ConfigurationError("Either viscosity or Reynolds number must be provided")
            if not reynolds_number > 0:
                raise ConfigurationError(f"Reynolds number must be positive, got {reynolds_number}")
            self.viscosity = self.density * self.characteristic_velocity * self.characteristic_length / reynolds_number
        else:
            if not (math.isfinite(viscosity) and viscosity > 0):
                raise ConfigurationError(f"Viscosity must be positive and finite, got {viscosity}")
            self.viscosity = viscosity
            if reynolds_number is None:
                self.reynolds_number = self.density * self.characteristic_velocity * self.characteristic_length / self.viscosity

    @property
    def kinematic_viscosity(self):
        """nu = mu / rho."""
        return self.viscosity / self.density

    def get_density(self):
        """Get fluid density."""
        return self.density

    def get_viscosity(self):
        """Get dynamic viscosity."""
        return self.viscosity

    def get_reynolds_number(self):
        """Get Reynolds number."""
        return self.reynolds_number
