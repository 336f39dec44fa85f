from .smagorinsky import SmagorinskyModel

__all__ = ['SmagorinskyModel']
