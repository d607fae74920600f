"""
Reference SDEs with closed-form densities.

Provides drift/diffusion pairs for a few classical SDEs together with their
exact transition densities, for checking DTQ output and for the demos.
"""

import numpy as np
from typing import Callable, Tuple
from scipy import stats


def make_sde(
    kind: str = "brownian",
    mu: float = 0.0,
    sigma: float = 1.0,
    theta: float = 1.0
) -> Tuple[Callable[[float], float], Callable[[float], float]]:
    """
    Build drift and diffusion functions for a reference SDE.

    Parameters
    ----------
    kind : str, default="brownian"
        One of:
        - "brownian": dX = mu dt + sigma dW
        - "ou": dX = theta (mu - X) dt + sigma dW (Ornstein-Uhlenbeck)
        - "gbm": dX = mu X dt + sigma X dW (geometric Brownian motion)
    mu, sigma, theta : float
        SDE parameters.

    Returns
    -------
    drift, diffusion : callable
        Scalar functions float -> float.
    """
    if kind == "brownian":
        def drift(x):
            return mu

        def diffusion(x):
            return sigma
    elif kind == "ou":
        def drift(x):
            return theta * (mu - x)

        def diffusion(x):
            return sigma
    elif kind == "gbm":
        def drift(x):
            return mu * x

        def diffusion(x):
            return sigma * x
    else:
        raise ValueError(f"Unknown SDE kind: {kind}. Use 'brownian', 'ou' or 'gbm'.")

    return drift, diffusion


def brownian_density(
    x: np.ndarray,
    x0: float,
    t: float,
    mu: float = 0.0,
    sigma: float = 1.0
) -> np.ndarray:
    """
    Density of X_t for dX = mu dt + sigma dW, X_0 = x0.

    Returns
    -------
    p : ndarray
        N(x0 + mu t, sigma² t) evaluated at x.
    """
    return stats.norm.pdf(x, loc=x0 + mu * t, scale=abs(sigma) * np.sqrt(t))


def ornstein_uhlenbeck_density(
    x: np.ndarray,
    x0: float,
    t: float,
    theta: float = 1.0,
    mu: float = 0.0,
    sigma: float = 1.0
) -> np.ndarray:
    """
    Density of X_t for dX = theta (mu - X) dt + sigma dW, X_0 = x0.

    Notes
    -----
    X_t is Gaussian with
        mean = mu + (x0 - mu) exp(-theta t)
        var  = sigma² / (2 theta) (1 - exp(-2 theta t))
    """
    mean = mu + (x0 - mu) * np.exp(-theta * t)
    var = sigma ** 2 / (2.0 * theta) * (1.0 - np.exp(-2.0 * theta * t))
    return stats.norm.pdf(x, loc=mean, scale=np.sqrt(var))


def geometric_brownian_density(
    x: np.ndarray,
    x0: float,
    t: float,
    mu: float = 0.0,
    sigma: float = 1.0
) -> np.ndarray:
    """
    Density of X_t for dX = mu X dt + sigma X dW, X_0 = x0 > 0.

    Log-normal: log X_t ~ N(log x0 + (mu - sigma²/2) t, sigma² t).
    Zero for x <= 0.
    """
    x = np.asarray(x, dtype=np.float64)
    s = abs(sigma) * np.sqrt(t)
    scale = x0 * np.exp((mu - 0.5 * sigma ** 2) * t)
    return stats.lognorm.pdf(x, s, scale=scale)
