"""
Convection discretization schemes for the momentum equations.

A scheme turns the outward convective flux F_out and the diffusion conductance
G = Gamma*ds/dx of one face into the neighbour coefficient a_nb of that face
and the face's contribution to the diagonal D.
"""

import numpy as np

from ....constructor.config import ConvectionScheme
from ....exceptions import UnsupportedConfigurationError


class ConvectionDiscretization:
    """Base class for convection discretization schemes."""

    def calculate_flux_coefficients(self, flux_out, conductance):
        """
        Calculate the face coefficients.

        Parameters:
        -----------
        flux_out : ndarray
            Convective volume flux leaving the control volume through the face
        conductance : ndarray or float
            Diffusion conductance Gamma*ds/dx of the face

        Returns:
        --------
        a_nb, a_p : ndarray
            Neighbour coefficient and diagonal contribution
        """
        raise NotImplementedError("Subclasses must implement this method")

    def get_name(self):
        """Return the name of the discretization scheme."""
        return self.__class__.__name__


class CentralDiscretization(ConvectionDiscretization):
    """Central differencing; the diagonal holds diffusion only."""

    def calculate_flux_coefficients(self, flux_out, conductance):
        a_nb = conductance - 0.5 * flux_out
        a_p = conductance + np.zeros_like(flux_out)
        return a_nb, a_p

    def get_name(self):
        return "Central"


class UpwindDiscretization(ConvectionDiscretization):
    """First-order upwind discretization scheme for convection terms."""

    def calculate_flux_coefficients(self, flux_out, conductance):
        a_nb = conductance + np.maximum(-flux_out, 0.0)
        a_p = conductance + np.maximum(flux_out, 0.0)
        return a_nb, a_p

    def get_name(self):
        return "Upwind"


SCHEMES = {
    ConvectionScheme.CDS: CentralDiscretization,
    ConvectionScheme.UDS: UpwindDiscretization,
}


def get_convection_scheme(scheme):
    try:
        return SCHEMES[scheme]()
    except KeyError:
        raise UnsupportedConfigurationError(f"Unsupported convection scheme: {scheme}")
