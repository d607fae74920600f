"""
pydtq: Density Tracking by Quadrature

Propagate the probability density of a scalar SDE dX = f(X) dt + g(X) dW
on a uniform grid by repeated quadrature against the Euler-Maruyama
transition kernel.
"""

__version__ = "0.1.0"

from .exceptions import DTQError, InvalidArgumentError, DomainError, NumericalInstabilityError
from .grid import create_symmetric_grid, create_bounded_grid
from .kernel import THRESH, LOG_THRESH
from .propagate import propagate_symmetric, propagate_bounded
from .results import DTQResult, Diagnostics
from .solver import DensityPropagator

__all__ = [
    "__version__",
    "propagate_symmetric",
    "propagate_bounded",
    "DensityPropagator",
    "DTQResult",
    "Diagnostics",
    "create_symmetric_grid",
    "create_bounded_grid",
    "THRESH",
    "LOG_THRESH",
    "DTQError",
    "InvalidArgumentError",
    "DomainError",
    "NumericalInstabilityError",
]
