from .boundary_conditions import BoundaryConditionManager, BoundaryLocation, BoundaryType
from .config import FluidSimConfig, GridInfo
from .properties.fluid import FluidProperties

__all__ = ['BoundaryConditionManager', 'BoundaryLocation', 'BoundaryType',
           'FluidSimConfig', 'GridInfo', 'FluidProperties']
