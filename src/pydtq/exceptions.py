"""
Error types raised by the density propagation engine.
"""


class DTQError(Exception):
    """Base class for all pydtq errors."""


class InvalidArgumentError(DTQError, ValueError):
    """A grid, step, horizon or initial-condition parameter is malformed."""


class DomainError(DTQError, ArithmeticError):
    """The transition kernel is undefined, e.g. zero diffusion at a grid node."""


class NumericalInstabilityError(DTQError, FloatingPointError):
    """A non-finite value appeared in the density being propagated."""
