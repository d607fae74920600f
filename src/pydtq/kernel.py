"""
Euler-Maruyama transition kernel and the single-step quadrature update.

One DTQ step advances a density sampled on a uniform grid:

    next_i = Σ_j K(x_i, x_j) current_j
    K(x_i, x_j) = k / sqrt(2π σ_j² h) exp(-(x_i - x_j - μ_j h)² / (2 σ_j² h))

with μ_j = drift(x_j) and σ_j = diffusion(x_j). The kernel is evaluated in
log space, source densities below THRESH are skipped, and for each target
row the walk over source nodes stops once the kernel itself drops below
THRESH.
"""

import math

import numpy as np
from dataclasses import dataclass
from typing import Callable, List, Tuple

from .exceptions import DomainError, NumericalInstabilityError
from .density import gaussian_density
from .utils import evaluate_on_grid

# Smallest density worth adding; also the kernel cutoff of the walk.
THRESH = 2.2e-16
LOG_THRESH = math.log(THRESH)


@dataclass(frozen=True)
class KernelCoefficients:
    """
    Per-node kernel terms, computed once for a fixed grid.

    Attributes
    ----------
    drift_h : list of float
        μ_j h for each source node.
    inv_two_var : list of float
        1 / (2 σ_j² h) for each source node.
    log_norm : list of float
        log(k) - 0.5 log(2π σ_j² h) for each source node.
    """
    drift_h: List[float]
    inv_two_var: List[float]
    log_norm: List[float]


def compute_kernel_coefficients(
    x: np.ndarray,
    k: float,
    h: float,
    drift: Callable[[float], float],
    diffusion: Callable[[float], float]
) -> KernelCoefficients:
    """
    Evaluate drift and diffusion at every grid node and fold them into
    the kernel terms used by `transition_rows`.

    Raises
    ------
    DomainError
        If diffusion is zero, or drift/diffusion is non-finite, at any node.
    """
    mu = evaluate_on_grid(drift, x)
    sigma = evaluate_on_grid(diffusion, x)

    bad = ~np.isfinite(mu) | ~np.isfinite(sigma)
    if np.any(bad):
        j = int(np.argmax(bad))
        raise DomainError(
            f"drift/diffusion not finite at x={x[j]}: drift={mu[j]}, diffusion={sigma[j]}"
        )

    var = sigma ** 2
    if np.any(var == 0):
        j = int(np.argmax(var == 0))
        raise DomainError(f"diffusion is zero at x={x[j]}; transition kernel undefined")

    drift_h = mu * h
    inv_two_var = 1.0 / (2.0 * var * h)
    log_norm = math.log(k) - 0.5 * np.log(2.0 * np.pi * var * h)

    return KernelCoefficients(
        drift_h=drift_h.tolist(),
        inv_two_var=inv_two_var.tolist(),
        log_norm=log_norm.tolist()
    )


def dirac_initial_density(
    x: np.ndarray,
    x0: float,
    h: float,
    drift: Callable[[float], float],
    diffusion: Callable[[float], float]
) -> np.ndarray:
    """
    Density one Euler-Maruyama step after a point mass at x0.

    Parameters
    ----------
    x : ndarray of shape (veclen,)
        Grid abscissas.
    x0 : float
        Deterministic starting point.
    h : float
        Time step.
    drift, diffusion : callable
        Scalar SDE coefficients.

    Returns
    -------
    p : ndarray of shape (veclen,)
        Gaussian N(x0 + drift(x0) h, diffusion(x0)² h) sampled on x.

    Notes
    -----
    A Dirac mass cannot be sampled on a grid, so the first step is taken
    in closed form and the quadrature recursion starts from its result.
    """
    x0 = float(x0)
    mu0 = float(drift(x0))
    sigma0 = abs(float(diffusion(x0)))
    if not (np.isfinite(mu0) and np.isfinite(sigma0)):
        raise DomainError(f"drift/diffusion not finite at x0={x0}")
    if sigma0 == 0:
        raise DomainError(f"diffusion is zero at x0={x0}; initial density undefined")

    return gaussian_density(x, x0 + mu0 * h, sigma0 ** 2 * h)


def check_finite(p: np.ndarray, step: int) -> None:
    """Raise NumericalInstabilityError if p holds NaN or Inf."""
    if not np.all(np.isfinite(p)):
        n_bad = int(np.sum(~np.isfinite(p)))
        raise NumericalInstabilityError(
            f"{n_bad} non-finite density value(s) after step {step}"
        )


def _exp(v: float) -> float:
    # math.exp raises where float64 would give inf
    try:
        return math.exp(v)
    except OverflowError:
        return math.inf


def transition_rows(
    rows: range,
    x: List[float],
    coeffs: KernelCoefficients,
    current: List[float],
    log_current: List[float],
    truncate: bool = True
) -> Tuple[List[float], int]:
    """
    Compute next_i for the target rows in `rows`.

    Parameters
    ----------
    rows : range
        Target indices to compute.
    x : list of float
        Grid abscissas.
    coeffs : KernelCoefficients
        Per-node kernel terms.
    current : list of float
        Density at the start of the step. Read only.
    log_current : list of float
        log(current_j) wherever current_j >= THRESH.
    truncate : bool, default=True
        If False, every source node is visited (in the same order).

    Returns
    -------
    values : list of float
        next_i for each i in `rows`.
    n_evals : int
        Number of log-kernel evaluations performed.

    Notes
    -----
    For each i the walk first goes j = i, i+1, ... and then j = i-1, i-2, ...
    The node at which the log-kernel first falls below LOG_THRESH still
    contributes; the walk in that direction stops right after it. Walks
    stop at the grid ends, so mass moving past an end is dropped.

    Arithmetic follows float64 overflow rules: an offset too large to square
    gives lker = -inf (zero contribution, walk stops), and a term too large
    to exponentiate makes the row inf, which `check_finite` then rejects.
    """
    n = len(x)
    drift_h = coeffs.drift_h
    inv_two_var = coeffs.inv_two_var
    log_norm = coeffs.log_norm

    values = []
    n_evals = 0
    for i in rows:
        x_i = x[i]
        tally = 0.0

        j = i
        while j < n:
            d = x_i - x[j] - drift_h[j]
            lker = log_norm[j] - d * d * inv_two_var[j]
            n_evals += 1
            if current[j] >= THRESH:
                tally += _exp(lker + log_current[j])
            j += 1
            if truncate and lker < LOG_THRESH:
                break

        j = i - 1
        while j >= 0:
            d = x_i - x[j] - drift_h[j]
            lker = log_norm[j] - d * d * inv_two_var[j]
            n_evals += 1
            if current[j] >= THRESH:
                tally += _exp(lker + log_current[j])
            j -= 1
            if truncate and lker < LOG_THRESH:
                break

        values.append(tally)

    return values, n_evals


def log_density(p: np.ndarray) -> np.ndarray:
    """log(p) where p >= THRESH, 0 elsewhere (those entries are skipped)."""
    return np.where(p >= THRESH, np.log(np.maximum(p, THRESH)), 0.0)
