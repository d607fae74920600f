"""
Grid utilities for spatial discretization.

Provides the two uniform grids used by the propagators: a grid symmetric
about 0 built from (k, M), and a grid covering an explicit interval [a, b].
"""

import numpy as np
from typing import Tuple

from .exceptions import InvalidArgumentError
from .utils import check_positive, check_integer


def create_symmetric_grid(k: float, M: int) -> Tuple[np.ndarray, float]:
    """
    Create a uniform grid of 2M+1 points centred on 0.
    
    Parameters
    ----------
    k : float
        Grid spacing, k > 0.
    M : int
        Half-width in grid points, M >= 0.
        
    Returns
    -------
    x : ndarray of shape (2*M + 1,)
        Read-only grid abscissas x_i = (i - M) * k.
    k : float
        Grid spacing.
        
    Notes
    -----
    The centre node x[M] is exactly 0 and the grid is symmetric:
    x[M + i] == -x[M - i].
    """
    k = check_positive("k", k)
    M = check_integer("M", M, 0)
    
    x = np.arange(-M, M + 1, dtype=np.float64) * k
    x.setflags(write=False)
    return x, k


def create_bounded_grid(a: float, b: float, veclen: int) -> Tuple[np.ndarray, float]:
    """
    Create a uniform grid of veclen points covering [a, b] inclusive.
    
    Parameters
    ----------
    a, b : float
        Interval endpoints, a < b.
    veclen : int
        Number of grid points, veclen >= 2.
        
    Returns
    -------
    x : ndarray of shape (veclen,)
        Read-only grid abscissas.
    k : float
        Grid spacing (b - a) / (veclen - 1).
        
    Notes
    -----
    Interior nodes are placed at a + i*k; the last node is set to b exactly
    so that round-off never moves the right endpoint.
    """
    try:
        a = float(a)
        b = float(b)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Grid bounds must be real numbers, got a={a!r}, b={b!r}")
    if not (np.isfinite(a) and np.isfinite(b)):
        raise InvalidArgumentError(f"Grid bounds must be finite, got a={a}, b={b}")
    if a >= b:
        raise InvalidArgumentError(f"Grid bounds must satisfy a < b, got a={a}, b={b}")
    veclen = check_integer("veclen", veclen, 2)
    
    k = (b - a) / (veclen - 1)
    x = a + np.arange(veclen, dtype=np.float64) * k
    x[-1] = b
    x.setflags(write=False)
    return x, k


def grid_spacing(x: np.ndarray, rtol: float = 1e-8) -> float:
    """
    Recover the spacing of a uniform grid.
    
    Parameters
    ----------
    x : ndarray of shape (n,)
        Grid abscissas, n >= 2.
    rtol : float, default=1e-8
        Relative tolerance on the uniformity of consecutive gaps.
        
    Returns
    -------
    k : float
        Mean spacing (x[-1] - x[0]) / (n - 1).
    """
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 1 or len(x) < 2:
        raise InvalidArgumentError("A grid needs at least 2 points to define a spacing")
    
    gaps = np.diff(x)
    if np.any(gaps <= 0):
        raise InvalidArgumentError("Grid must be strictly increasing")
    
    k = (x[-1] - x[0]) / (len(x) - 1)
    if not np.allclose(gaps, k, rtol=rtol, atol=0.0):
        raise InvalidArgumentError("Grid must be uniformly spaced")
    return float(k)
