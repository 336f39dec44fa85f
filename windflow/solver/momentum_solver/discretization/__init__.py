from .convection_schemes import CentralDiscretization, UpwindDiscretization, get_convection_scheme

__all__ = ['CentralDiscretization', 'UpwindDiscretization', 'get_convection_scheme']
