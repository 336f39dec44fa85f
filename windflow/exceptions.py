"""
Exception types raised by windflow.
"""


class ConfigurationError(ValueError):
    """Invalid external input: configuration values or obstacle mask."""


class UnsupportedConfigurationError(NotImplementedError):
    """A grid arrangement paired with a scheme or model that is not implemented."""


class SolverDivergenceError(ValueError):
    """The solution became non-finite (NaN or Inf)."""
