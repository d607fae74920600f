"""
Entry points: propagate an SDE density on a symmetric or a bounded grid.

Both functions build their grid and hand off to `DensityPropagator`.
"""

import numpy as np
from typing import Callable, Sequence, Union

from .grid import create_symmetric_grid, create_bounded_grid
from .results import DTQResult
from .solver import DensityPropagator

InitialCondition = Union[float, Sequence[float], np.ndarray]


def propagate_symmetric(
    h: float,
    k: float,
    M: int,
    init: InitialCondition,
    T: float,
    drift: Callable[[float], float],
    diffusion: Callable[[float], float],
    truncate: bool = True,
    n_workers: int = 1,
    record_history: bool = False,
    verbose: bool = False
) -> DTQResult:
    """
    Density of X_T on the grid x_i = (i - M) k, i = 0..2M.

    Parameters
    ----------
    h : float
        Time step, h > 0.
    k : float
        Grid spacing, k > 0.
    M : int
        Grid half-width, M >= 0; the grid has 2M+1 points.
    init : float or sequence
        Single value x0 (start from a point mass at x0) or a density of
        length 2M+1 sampled on the grid.
    T : float
        Horizon, T > 0. ceil(T/h) time steps are taken.
    drift, diffusion : callable
        Scalar SDE coefficients float -> float.
    truncate : bool, default=True
        Use the early-termination walk.
    n_workers : int, default=1
        Threads per transition. Results match n_workers=1 bit for bit;
        see `DensityPropagator` for why this does not speed up the walk.
    record_history : bool, default=False
        Keep the density after every step.
    verbose : bool, default=False
        Print progress information.

    Returns
    -------
    result : DTQResult
        result.grid and result.density, index-aligned.

    Examples
    --------
    >>> res = propagate_symmetric(0.01, 0.1, 50, [0.0], 0.1,
    ...                           lambda x: 0.0, lambda x: 1.0)
    >>> res.grid.shape
    (101,)
    """
    x, k = create_symmetric_grid(k, M)

    propagator = DensityPropagator(
        x, h, drift, diffusion, k=k,
        truncate=truncate, n_workers=n_workers, verbose=verbose
    )
    result = propagator.run(init, T, record_history=record_history)
    result.config.update({'grid': 'symmetric', 'k': k, 'M': int(M)})
    return result


def propagate_bounded(
    h: float,
    a: float,
    b: float,
    veclen: int,
    init: InitialCondition,
    T: float,
    drift: Callable[[float], float],
    diffusion: Callable[[float], float],
    truncate: bool = True,
    n_workers: int = 1,
    record_history: bool = False,
    verbose: bool = False
) -> DTQResult:
    """
    Density of X_T on veclen uniformly spaced points covering [a, b].

    Parameters
    ----------
    h : float
        Time step, h > 0.
    a, b : float
        Grid bounds, a < b. Both are grid nodes.
    veclen : int
        Number of grid points, veclen >= 2.
    init : float or sequence
        Single value x0 (point-mass start) or a density of length veclen.
    T : float
        Horizon, T > 0.
    drift, diffusion : callable
        Scalar SDE coefficients float -> float.
    truncate, n_workers, record_history, verbose
        See `propagate_symmetric`.

    Returns
    -------
    result : DTQResult
    """
    x, k = create_bounded_grid(a, b, veclen)

    propagator = DensityPropagator(
        x, h, drift, diffusion, k=k,
        truncate=truncate, n_workers=n_workers, verbose=verbose
    )
    result = propagator.run(init, T, record_history=record_history)
    result.config.update({
        'grid': 'bounded', 'a': float(a), 'b': float(b), 'veclen': int(veclen)
    })
    return result
