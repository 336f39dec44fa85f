"""
Execution backends.

A backend supplies the per-iteration kernels (momentum sweep, pressure-correction
sweep, block residual sums). The numerical contract is identical across backends.
"""

import logging

from .numpy_backend import NumpyBackend
from .numba_backend import NumbaBackend
from ...exceptions import UnsupportedConfigurationError

log = logging.getLogger(__name__)

BACKENDS = {
    "numpy": NumpyBackend,
    "numba": NumbaBackend,
}


def get_backend(name):
    """Instantiate the backend registered under ``name``."""
    try:
        backend_cls = BACKENDS[str(name).lower()]
    except KeyError:
        raise UnsupportedConfigurationError(
            f"Unsupported backend: {name}. Available: {', '.join(BACKENDS)}"
        )
    log.info(f"Using {backend_cls.name} backend")
    return backend_cls()


__all__ = ["NumpyBackend", "NumbaBackend", "get_backend"]
