"""
Visualization tools for DTQ results.

Provides functions for plotting the final density against a reference,
the density history as a heatmap, and the mass carried by each step.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import Optional, Union
from pathlib import Path

from .results import DTQResult
from .density import compute_total_mass


def plot_density(
    result: DTQResult,
    reference: Optional[np.ndarray] = None,
    ax: Optional[plt.Axes] = None,
    title: Optional[str] = None
) -> plt.Axes:
    """
    Plot the final density, optionally against a reference density.

    Parameters
    ----------
    result : DTQResult
        Propagation result.
    reference : ndarray of shape (veclen,), optional
        Exact density on result.grid.
    ax : Axes, optional
        Matplotlib axes. If None, creates new figure.
    title : str, optional
        Plot title. Default shows T.

    Returns
    -------
    ax : Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 4))

    ax.plot(result.grid, result.density, 'b-', lw=2, label='DTQ')
    if reference is not None:
        ax.plot(result.grid, reference, 'r--', lw=1.5, label='Exact')
    ax.set_xlabel('x')
    ax.set_ylabel('p(x, T)')
    ax.set_title(title if title is not None else f'Density at T = {result.T:g}')
    ax.legend()

    return ax


def plot_density_heatmap(
    result: DTQResult,
    ax: Optional[plt.Axes] = None,
    cmap: str = "viridis",
    title: str = "Density p(x,t)"
) -> plt.Axes:
    """
    Plot the recorded density history as a heatmap over x and t.

    Parameters
    ----------
    result : DTQResult
        Result of a run with record_history=True.
    ax : Axes, optional
        Matplotlib axes. If None, creates new figure.
    cmap : str, default="viridis"
        Colormap.
    title : str
        Plot title.

    Returns
    -------
    ax : Axes
    """
    if result.history is None:
        raise ValueError("Result has no history; rerun with record_history=True")

    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 5))

    extent = [
        result.time_values[0], result.time_values[-1],
        result.grid[0], result.grid[-1]
    ]

    im = ax.imshow(
        result.history, aspect='auto', origin='lower',
        extent=extent, cmap=cmap
    )
    ax.set_xlabel('Time')
    ax.set_ylabel('x')
    ax.set_title(title)
    plt.colorbar(im, ax=ax, label='Density')

    return ax


def plot_mass(
    result: DTQResult,
    ax: Optional[plt.Axes] = None,
    title: str = "Total mass"
) -> plt.Axes:
    """
    Plot Σ p_i k after each step (needs history) or the start/end masses.

    Mass below 1 is probability that left the grid.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4))

    if result.history is not None:
        masses = [compute_total_mass(result.history[:, n], result.k)
                  for n in range(result.history.shape[1])]
        ax.plot(result.time_values, masses, 'o-', color='steelblue', ms=3)
    else:
        diag = result.diagnostics
        ax.plot([result.h, diag.n_steps * result.h],
                [diag.initial_mass, diag.final_mass], 'o-', color='steelblue')
    ax.axhline(1.0, color='gray', lw=0.5)
    ax.set_xlabel('Time')
    ax.set_ylabel('Σ p k')
    ax.set_title(title)

    return ax


def save_all_plots(
    result: DTQResult,
    output_dir: Union[str, Path],
    reference: Optional[np.ndarray] = None,
    prefix: str = ""
):
    """
    Save all standard plots to output directory.

    Parameters
    ----------
    result : DTQResult
        Propagation result.
    output_dir : str or Path
        Output directory.
    reference : ndarray, optional
        Exact density on result.grid.
    prefix : str
        Filename prefix.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    # Final density
    fig, ax = plt.subplots(figsize=(7, 4))
    plot_density(result, reference=reference, ax=ax)
    fig.savefig(output_dir / f"{prefix}density.png", dpi=150, bbox_inches='tight')
    plt.close(fig)

    # Mass per step
    fig, ax = plt.subplots(figsize=(6, 4))
    plot_mass(result, ax=ax)
    fig.savefig(output_dir / f"{prefix}mass.png", dpi=150, bbox_inches='tight')
    plt.close(fig)

    if result.history is not None:
        fig, ax = plt.subplots(figsize=(8, 5))
        plot_density_heatmap(result, ax=ax)
        fig.savefig(output_dir / f"{prefix}density_heatmap.png", dpi=150, bbox_inches='tight')
        plt.close(fig)
