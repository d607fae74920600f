"""
Density vector helpers.

A density vector holds point values of a PDF at the grid nodes; the
quadrature weight of every node is the grid spacing k.
"""

import numpy as np
from scipy import stats


def compute_total_mass(p: np.ndarray, k: float) -> float:
    """
    Compute total mass (integral of density over the grid).
    
    Parameters
    ----------
    p : ndarray of shape (veclen,)
        Density at grid nodes.
    k : float
        Grid spacing.
        
    Returns
    -------
    mass : float
        Total mass: ∫ p(x) dx ≈ Σ p_i * k
    """
    return float(np.sum(p) * k)


def density_to_pdf(p: np.ndarray, k: float) -> np.ndarray:
    """
    Renormalize a density so it integrates to 1 on the grid.
    
    Parameters
    ----------
    p : ndarray of shape (veclen,)
        Density at grid nodes.
    k : float
        Grid spacing.
        
    Returns
    -------
    pdf : ndarray of shape (veclen,)
        p / Σ p_i k. All zeros if the density carries no mass.
        
    Notes
    -----
    This is a post-processing view only. The propagator itself never
    renormalizes, so mass that left the grid stays lost in the raw density.
    """
    total_mass = compute_total_mass(p, k)
    if total_mass <= 0:
        return np.zeros_like(p, dtype=np.float64)
    return p / total_mass


def pdf_to_cdf(p: np.ndarray, k: float) -> np.ndarray:
    """
    Convert a PDF sampled on the grid to a CDF.
    
    Parameters
    ----------
    p : ndarray of shape (veclen,)
        PDF values at grid nodes.
    k : float
        Grid spacing.
        
    Returns
    -------
    cdf : ndarray of shape (veclen,)
        CDF values at grid nodes, clipped to [0, 1].
        
    Notes
    -----
    Each node owns a cell of width k centred on it, so the CDF at a node
    counts half of that node's own cell.
    """
    cumsum = np.cumsum(p) * k
    cdf = cumsum - p * k / 2
    return np.clip(cdf, 0.0, 1.0)


def gaussian_density(x: np.ndarray, mean: float, variance: float) -> np.ndarray:
    """Normal PDF N(mean, variance) evaluated at x."""
    return stats.norm.pdf(x, loc=mean, scale=np.sqrt(variance))
