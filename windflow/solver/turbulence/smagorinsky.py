"""
Smagorinsky LES closure with a log-law wall function.

Evaluated once per time step from velocity@t on the collocated grid:
    nu_t = (Cs*dx)**2 * |S|,  |S| = sqrt(2 S_ij S_ij)
Face eddy viscosity is the mean of the two adjacent cells. At faces between a
fluid cell and a solid cell the wall function replaces it so that the
discrete wall shear matches the rough-wall log law. The deferred source adds
the transpose part of the eddy stress, div(nu_t * grad(u)^T), to the momentum
source.
"""

import logging

import numpy as np

from ...core.stencil import AXIS, shift

log = logging.getLogger(__name__)


def velocity_gradient(vel, dx):
    """G[i, j] = d u_i / d x_j at cell centres, shape (3, 3, Nz, Ny, Nx)."""
    G = np.empty((3, 3) + vel.shape[1:])
    for i in range(3):
        for j in range(3):
            G[i, j] = np.gradient(vel[i], dx, axis=AXIS[j])
    return G


class SmagorinskyModel:
    """
    Smagorinsky sub-grid model.

    Parameters:
    -----------
    config : FluidSimConfig
        Supplies the model constant, the von Karman constant, the wall
        roughness and whether the wall function is active
    grid : GridInfo
        Grid extents and derived scalars
    """

    def __init__(self, config, grid):
        self.grid = grid
        self.cs = config.smagorinsky_constant
        self.kappa = config.karman_constant
        self.z0 = config.wall_roughness
        self.wall_function = config.wall_function

    def update(self, fields):
        """Compute nu_t, nu_t_face, the wall correction and the deferred source from ``vel_time``."""
        G = velocity_gradient(fields.vel_time, self.grid.dx)
        self.compute_eddy_viscosity(fields, G)
        if self.wall_function:
            self.apply_wall_function(fields)
        self.compute_deferred_source(fields, G)

    def compute_eddy_viscosity(self, fields, G):
        S = 0.5 * (G + G.transpose(1, 0, 2, 3, 4))
        strain = np.sqrt(2.0 * np.sum(S * S, axis=(0, 1)))
        nu_t = (self.cs * self.grid.dx) ** 2 * strain
        nu_t[fields.solid] = 0.0
        fields.nu_t[...] = nu_t
        for c in range(3):
            fields.nu_t_face[c] = 0.5 * (nu_t + shift(nu_t, c, 1))
        log.debug(f"Eddy viscosity: max {nu_t.max():.3e}")

    def wall_eddy_viscosity(self, tangential_speed):
        """
        Eddy viscosity of a wall face from the rough-wall log law.

        u_tau = kappa*|u_t| / ln((dx/2)/z0); the face carries
        nu_t = u_tau**2 * dx / |u_t| - nu, clipped at zero.
        """
        dx = self.grid.dx
        u_tau = self.kappa * tangential_speed / np.log(0.5 * dx / self.z0)
        with np.errstate(divide="ignore", invalid="ignore"):
            nu_w = np.where(tangential_speed > 0.0,
                            u_tau ** 2 * dx / tangential_speed - self.grid.nu, 0.0)
        return np.maximum(nu_w, 0.0)

    def apply_wall_function(self, fields):
        vel = fields.vel_time
        fluid = fields.p_active
        for c in range(3):
            others = [d for d in range(3) if d != c]
            speed = np.sqrt(sum(vel[d] ** 2 for d in others))
            nu_w = self.wall_eddy_viscosity(speed)
            # solid on the + side: the wall face is this cell's + face
            plus = fluid & shift(fields.solid, c, 1)
            fields.nu_t_face[c][plus] = nu_w[plus]
            # solid on the - side: the wall face is the + face of the solid neighbour
            minus = shift(fluid & shift(fields.solid, c, -1), c, 1)
            fields.nu_t_face[c][minus] = shift(nu_w, c, 1)[minus]

    def compute_deferred_source(self, fields, G):
        ds = self.grid.ds
        source = np.zeros((3,) + self.grid.shape)
        for i in range(3):
            for j in range(3):
                g = G[j, i]
                stress = np.where(fields.face_interior[j],
                                  fields.nu_t_face[j] * 0.5 * (g + shift(g, j, 1)), 0.0)
                source[i] += ds * (stress - shift(stress, j, -1))
        fields.les_source[...] = np.where(fields.vel_active, source, 0.0)
