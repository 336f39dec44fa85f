"""
Obstacle mask handling.

The mask is produced by an external voxelizer as a flat integer array of
length Nx*Ny*Nz, index z*(Nx*Ny) + y*Nx + x, 0 = fluid and nonzero = solid.
"""

import logging

import numpy as np
from scipy import ndimage

from .config import SolidType
from ..exceptions import ConfigurationError

log = logging.getLogger(__name__)


def validate_mask(flags, grid):
    """
    Check an obstacle mask against the grid and return it as an (Nz, Ny, Nx) int32 array.

    The mask is either flat (length Nx*Ny*Nz) or already shaped (Nz, Ny, Nx).

    Raises:
    -------
    ConfigurationError
        If the mask is not integer-valued, its length is not Nx*Ny*Nz or it
        is multi-dimensional with a shape other than (Nz, Ny, Nx).
    """
    flags = np.asarray(flags)
    if flags.dtype != bool and not np.issubdtype(flags.dtype, np.integer):
        raise ConfigurationError(f"Obstacle mask must be an integer array, got dtype {flags.dtype}")
    if flags.ndim > 1 and flags.shape != grid.shape:
        raise ConfigurationError(f"Obstacle mask has shape {flags.shape}, expected flat or {grid.shape} (Nz, Ny, Nx)")
    if flags.size != grid.n_cells:
        raise ConfigurationError(
            f"Obstacle mask has {flags.size} entries, expected {grid.n_cells} "
            f"for a {grid.resolution[0]} x {grid.resolution[1]} x {grid.resolution[2]} grid"
        )
    return flags.reshape(grid.shape).astype(np.int32)


def box_mask(grid, box_start, box_end):
    """Mark cells whose centre lies inside the box given as fractions of the domain."""
    centres = []
    for c in range(3):
        n = grid.resolution[c]
        frac = (np.arange(n) + 0.5) / n
        centres.append((frac >= box_start[c]) & (frac <= box_end[c]))
    inside_x, inside_y, inside_z = centres
    return (inside_z[:, None, None] & inside_y[None, :, None] & inside_x[None, None, :]).astype(np.int32)


def default_mask(config, grid):
    if config.solid_type == SolidType.BOX:
        return box_mask(grid, config.box_start, config.box_end)
    return np.zeros(grid.shape, dtype=np.int32)


def fill_enclosed_cavities(flags):
    """
    Turn fluid pockets that are completely enclosed by solid into solid.

    Voxelized buildings are often hollow; their interior cannot exchange mass
    with the rest of the domain and only slows the pressure solve down.
    """
    solid = flags != 0
    filled = ndimage.binary_fill_holes(solid)
    n_filled = int(np.count_nonzero(filled & ~solid))
    if n_filled:
        log.warning(f"Filled {n_filled} enclosed fluid cells inside obstacles")
        flags = flags.copy()
        flags[filled & ~solid] = 1
    return flags
