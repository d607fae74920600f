"""
Result containers and diagnostic information.

Provides structured output from density propagation with save/load functionality.
"""

import numpy as np
import pandas as pd
import json
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from pathlib import Path

from .density import compute_total_mass, density_to_pdf, pdf_to_cdf


@dataclass
class Diagnostics:
    """
    Run diagnostics for one propagation call.

    Attributes
    ----------
    n_steps : int
        Total number of time steps, ceil(T/h).
    n_transitions : int
        Number of quadrature transitions applied, n_steps - 1.
    initial_mass : float
        Σ p_i k of the initial density.
    final_mass : float
        Σ p_i k of the final density.
    kernel_evaluations : int
        Total number of log-kernel evaluations over all transitions.
    elapsed_time : float
        Wall-clock time of the propagation in seconds.
    """
    n_steps: int
    n_transitions: int
    initial_mass: float
    final_mass: float
    kernel_evaluations: int = 0
    elapsed_time: float = 0.0

    @property
    def mass_loss(self) -> float:
        """Mass lost through the grid ends (no renormalization is applied)."""
        return self.initial_mass - self.final_mass


@dataclass
class DTQResult:
    """
    Density of X at the terminal time, sampled on the grid.

    Attributes
    ----------
    grid : ndarray of shape (veclen,)
        Grid abscissas.
    density : ndarray of shape (veclen,)
        Final density, index-aligned with grid.
    k : float
        Grid spacing (quadrature weight).
    h : float
        Time step.
    T : float
        Requested horizon.
    diagnostics : Diagnostics
        Run diagnostics.
    history : ndarray of shape (veclen, n_steps), optional
        Density after each step (only if recorded).
    time_values : ndarray of shape (n_steps,), optional
        Times matching the columns of history: h, 2h, ..., n_steps*h.
    config : dict
        Options used for the run.
    """
    grid: np.ndarray
    density: np.ndarray
    k: float
    h: float
    T: float
    diagnostics: Diagnostics
    history: Optional[np.ndarray] = None
    time_values: Optional[np.ndarray] = None
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Return {'grid': ..., 'density': ...}."""
        return {'grid': self.grid, 'density': self.density}

    def mass(self) -> float:
        """Total mass Σ p_i k of the final density."""
        return compute_total_mass(self.density, self.k)

    def pdf(self) -> np.ndarray:
        """Final density renormalized to unit mass on the grid."""
        return density_to_pdf(self.density, self.k)

    def cdf(self) -> np.ndarray:
        """CDF of the renormalized final density at grid nodes."""
        return pdf_to_cdf(self.pdf(), self.k)

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        """
        Evaluate the final density at arbitrary points.

        Parameters
        ----------
        x : ndarray
            Evaluation points.

        Returns
        -------
        p : ndarray
            Linear interpolation of the density; 0 outside the grid.
        """
        x = np.asarray(x, dtype=np.float64)
        if len(self.grid) < 2:
            return np.where(x == self.grid[0], self.density[0], 0.0)

        from scipy.interpolate import interp1d
        p_interp = interp1d(
            self.grid, self.density, kind='linear',
            bounds_error=False, fill_value=0.0
        )
        return p_interp(x)

    def to_frame(self) -> pd.DataFrame:
        """Tabulate grid, raw density, normalized pdf and cdf."""
        return pd.DataFrame({
            'x': self.grid,
            'density': self.density,
            'pdf': self.pdf(),
            'cdf': self.cdf()
        })

    def save(self, path: str):
        """
        Save results to file.

        Parameters
        ----------
        path : str
            Output file path. Uses .npz format.
        """
        path = Path(path)

        diag = self.diagnostics
        diag_dict = {
            'diag_n_steps': diag.n_steps,
            'diag_n_transitions': diag.n_transitions,
            'diag_initial_mass': diag.initial_mass,
            'diag_final_mass': diag.final_mass,
            'diag_kernel_evaluations': diag.kernel_evaluations,
            'diag_elapsed_time': diag.elapsed_time,
        }

        np.savez(
            path,
            grid=self.grid,
            density=self.density,
            k=self.k,
            h=self.h,
            T=self.T,
            history=self.history if self.history is not None else np.array([]),
            time_values=self.time_values if self.time_values is not None else np.array([]),
            config=json.dumps(self.config),
            **diag_dict
        )

    @classmethod
    def load(cls, path: str) -> "DTQResult":
        """
        Load results from file.

        Parameters
        ----------
        path : str
            Input file path (.npz format).

        Returns
        -------
        result : DTQResult
        """
        data = np.load(path, allow_pickle=False)

        diagnostics = Diagnostics(
            n_steps=int(data['diag_n_steps']),
            n_transitions=int(data['diag_n_transitions']),
            initial_mass=float(data['diag_initial_mass']),
            final_mass=float(data['diag_final_mass']),
            kernel_evaluations=int(data['diag_kernel_evaluations']),
            elapsed_time=float(data['diag_elapsed_time'])
        )

        history = data['history']
        time_values = data['time_values']

        return cls(
            grid=data['grid'],
            density=data['density'],
            k=float(data['k']),
            h=float(data['h']),
            T=float(data['T']),
            diagnostics=diagnostics,
            history=history if history.size > 0 else None,
            time_values=time_values if time_values.size > 0 else None,
            config=json.loads(str(data['config']))
        )
