"""
Abstract base class for velocity solvers.
"""

from abc import ABC, abstractmethod


class VelocityUpdater(ABC):
    """
    Base class for velocity updaters.
    """

    def __init__(self, grid, bc_manager):
        """Initialize the velocity updater."""
        self.grid = grid
        self.bc_manager = bc_manager

    @abstractmethod
    def velocity_increment(self, fields, correction):
        """
        Velocity change -d * grad(p') on the active degrees of freedom.

        Parameters:
        -----------
        fields : FieldStore
            Field store holding the momentum diagonal and the masks
        correction : ndarray
            Pressure-correction field

        Returns:
        --------
        ndarray
            (3, ...) increment, zero outside the active degrees of freedom
        """
        pass

    def update_velocity(self, fields, correction):
        """
        Correct ``fields.vel`` (and the face fluxes) with the pressure correction.

        The applied increment is stored in ``fields.vel_corr``; boundary
        conditions are re-imposed and solid degrees of freedom zeroed afterwards.
        """
        du = self.velocity_increment(fields, correction)
        fields.vel += du
        fields.vel_corr[...] = du
        self.correct_face_flux(fields, correction)
        self.bc_manager.apply_velocity_boundary_conditions(fields.vel, fields, self.grid)

    def correct_face_flux(self, fields, correction):
        pass
