"""
Utility functions for pydtq.

Helpers for calling user-supplied scalar functions on a grid and for
comparing densities.
"""

import numbers

import numpy as np
from typing import Callable, Optional

from .exceptions import InvalidArgumentError


def check_positive(name: str, value: float) -> float:
    """Coerce value to float and require it to be finite and > 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be a real number, got {value!r}")
    if not np.isfinite(value) or value <= 0:
        raise InvalidArgumentError(f"{name} must be positive and finite, got {value}")
    return value


def check_integer(name: str, value, minimum: int) -> int:
    """Require an integral value (bool excluded) >= minimum."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidArgumentError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def check_callable(name: str, func) -> Callable[[float], float]:
    """Ensure func can be called as a scalar function."""
    if not callable(func):
        raise InvalidArgumentError(f"{name} must be callable, got {type(func).__name__}")
    return func


def evaluate_on_grid(func: Callable[[float], float], x: np.ndarray) -> np.ndarray:
    """
    Evaluate a scalar function at every grid node.
    
    Parameters
    ----------
    func : callable
        Scalar function float -> float. Called once per node, in order.
    x : ndarray of shape (n,)
        Grid abscissas.
        
    Returns
    -------
    values : ndarray of shape (n,)
        func(x_i) as float64.
    """
    return np.array([float(func(float(x_i))) for x_i in x], dtype=np.float64)


def relative_error(
    approx: np.ndarray,
    exact: np.ndarray,
    floor: Optional[float] = None
) -> float:
    """
    Maximum relative error between two arrays.
    
    Parameters
    ----------
    approx, exact : ndarray
        Arrays on the same grid.
    floor : float, optional
        Entries where |exact| < floor are ignored. Default: 1e-3 * max|exact|.
        
    Returns
    -------
    err : float
        max |approx - exact| / |exact| over the retained entries.
    """
    approx = np.asarray(approx, dtype=np.float64).ravel()
    exact = np.asarray(exact, dtype=np.float64).ravel()
    
    if floor is None:
        floor = 1e-3 * np.max(np.abs(exact))
    
    mask = np.abs(exact) >= floor
    if not np.any(mask):
        return 0.0
    
    return float(np.max(np.abs(approx[mask] - exact[mask]) / np.abs(exact[mask])))
