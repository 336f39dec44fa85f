from .base_velocity_solver import VelocityUpdater
from .standard import CollocatedVelocityUpdater, StaggeredVelocityUpdater

__all__ = ['VelocityUpdater', 'CollocatedVelocityUpdater', 'StaggeredVelocityUpdater']
