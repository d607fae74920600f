"""
DensityPropagator: the DTQ engine shared by both grid variants.

Builds the initial density (Dirac start or supplied vector), then applies
the quadrature transition of `pydtq.kernel` a fixed number of times,
alternating between two density buffers.
"""

import math
import time
from concurrent.futures import Executor, ThreadPoolExecutor

import numpy as np
from typing import Callable, Optional, Tuple, List, Any

from .exceptions import InvalidArgumentError
from .grid import grid_spacing
from .kernel import (
    KernelCoefficients, compute_kernel_coefficients, dirac_initial_density,
    transition_rows, log_density, check_finite
)
from .density import compute_total_mass
from .results import DTQResult, Diagnostics
from .utils import check_callable, check_positive, check_integer


def count_steps(T: float, h: float) -> int:
    """
    Total number of time steps ceil(T/h), at least 1.

    T/h is taken as computed in floating point: T=0.07, h=0.01 gives
    7.000000000000001 and therefore 8 steps.
    """
    return max(int(math.ceil(T / h)), 1)


class DensityPropagator:
    """
    Density tracking by quadrature on a fixed uniform grid.

    Parameters
    ----------
    x : ndarray of shape (veclen,)
        Grid abscissas (uniform, strictly increasing).
    h : float
        Time step, h > 0.
    drift : callable
        Drift function float -> float.
    diffusion : callable
        Diffusion function float -> float. Only its square enters the kernel.
    k : float, optional
        Grid spacing. If None, recovered from x (requires veclen >= 2).
    truncate : bool, default=True
        Stop each row's walk once the kernel falls below THRESH. If False,
        every source node is visited.
    n_workers : int, default=1
        Number of threads computing rows of one transition. Rows are split
        into contiguous chunks; all workers read the same frozen density.
        The row walk is pure Python and holds the GIL, so on CPython the
        threads give the same result but no speedup.
    verbose : bool, default=False
        Print progress information.

    Attributes
    ----------
    x : ndarray
        Grid abscissas.
    k : float
        Grid spacing.
    veclen : int
        Number of grid points.
    """

    def __init__(
        self,
        x: np.ndarray,
        h: float,
        drift: Callable[[float], float],
        diffusion: Callable[[float], float],
        k: Optional[float] = None,
        truncate: bool = True,
        n_workers: int = 1,
        verbose: bool = False
    ):
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or len(x) == 0:
            raise InvalidArgumentError("Grid must be a non-empty 1-D array")
        if not np.all(np.isfinite(x)):
            raise InvalidArgumentError("Grid must contain finite values only")

        self.x = x
        self.h = check_positive("h", h)
        self.k = grid_spacing(x) if k is None else check_positive("k", k)
        self.drift = check_callable("drift", drift)
        self.diffusion = check_callable("diffusion", diffusion)
        self.truncate = bool(truncate)
        self.n_workers = check_integer("n_workers", n_workers, 1)
        self.verbose = verbose
        self.veclen = len(x)

        self._x_list = x.tolist()
        self._coeffs: Optional[KernelCoefficients] = None

    @property
    def coefficients(self) -> KernelCoefficients:
        """Kernel terms at every node; drift/diffusion are evaluated on first use."""
        if self._coeffs is None:
            self._coeffs = compute_kernel_coefficients(
                self.x, self.k, self.h, self.drift, self.diffusion
            )
        return self._coeffs

    def initial_density(self, init: Any) -> Tuple[np.ndarray, str]:
        """
        Build the starting density.

        Parameters
        ----------
        init : float or sequence
            A single value x0 (Dirac start) or a density of length veclen.

        Returns
        -------
        p0 : ndarray of shape (veclen,)
            Starting density (a fresh array).
        kind : str
            "dirac" or "density".
        """
        try:
            init = np.atleast_1d(np.asarray(init, dtype=np.float64))
        except (TypeError, ValueError):
            raise InvalidArgumentError("init must be a number or a sequence of numbers")

        if init.ndim != 1 or len(init) == 0:
            raise InvalidArgumentError(f"init must be 1-D and non-empty, got shape {init.shape}")
        if not np.all(np.isfinite(init)):
            raise InvalidArgumentError("init must contain finite values only")

        if len(init) == 1:
            p0 = dirac_initial_density(self.x, init[0], self.h, self.drift, self.diffusion)
            return p0, "dirac"

        if len(init) != self.veclen:
            raise InvalidArgumentError(
                f"init length {len(init)} != grid length {self.veclen} "
                "(use a single value for a point-mass start)"
            )
        if np.any(init < 0):
            raise InvalidArgumentError("init density must be non-negative")
        return init.copy(), "density"

    def _chunks(self) -> List[range]:
        bounds = np.linspace(0, self.veclen, min(self.n_workers, self.veclen) + 1).astype(int)
        return [range(lo, hi) for lo, hi in zip(bounds[:-1], bounds[1:]) if hi > lo]

    def step(
        self,
        current: np.ndarray,
        out: Optional[np.ndarray] = None,
        executor: Optional[Executor] = None
    ) -> Tuple[np.ndarray, int]:
        """
        Apply one quadrature transition.

        Parameters
        ----------
        current : ndarray of shape (veclen,)
            Density at the start of the step. Not modified.
        out : ndarray of shape (veclen,), optional
            Buffer receiving the new density. Must not alias current.
        executor : Executor, optional
            Pool used to compute row chunks concurrently.

        Returns
        -------
        next : ndarray of shape (veclen,)
            Density after the step (out, if given).
        n_evals : int
            Number of log-kernel evaluations.
        """
        if out is None:
            out = np.empty(self.veclen, dtype=np.float64)
        elif out is current:
            raise InvalidArgumentError("out must not alias the current density")

        coeffs = self.coefficients
        current_list = current.tolist()
        log_current = log_density(current).tolist()

        def run_chunk(rows: range) -> Tuple[range, List[float], int]:
            values, n_evals = transition_rows(
                rows, self._x_list, coeffs, current_list, log_current,
                truncate=self.truncate
            )
            return rows, values, n_evals

        chunks = self._chunks()
        if executor is None or len(chunks) == 1:
            outputs = map(run_chunk, chunks)
        else:
            outputs = executor.map(run_chunk, chunks)

        total_evals = 0
        for rows, values, n_evals in outputs:
            out[rows.start:rows.stop] = values
            total_evals += n_evals

        return out, total_evals

    def run(self, init: Any, T: float, record_history: bool = False) -> DTQResult:
        """
        Propagate the density to time T.

        Parameters
        ----------
        init : float or sequence
            Initial condition, see `initial_density`.
        T : float
            Horizon, T > 0. ceil(T/h) steps are taken in total; the first
            is the initial density itself.
        record_history : bool, default=False
            Keep the density after every step.

        Returns
        -------
        result : DTQResult
        """
        T = check_positive("T", T)
        n_steps = count_steps(T, self.h)
        n_transitions = n_steps - 1

        start_time = time.time()
        current, kind = self.initial_density(init)
        check_finite(current, 0)
        initial_mass = compute_total_mass(current, self.k)

        if self.verbose:
            print(f"DTQ: {self.veclen} grid points, k = {self.k:.4g}, h = {self.h:.4g}, "
                  f"{n_steps} steps ({kind} start)")

        history = None
        if record_history:
            history = np.zeros((self.veclen, n_steps))
            history[:, 0] = current

        # Double buffer: `nxt` is overwritten each step, then the two swap.
        nxt = np.empty(self.veclen, dtype=np.float64)
        total_evals = 0

        executor = ThreadPoolExecutor(max_workers=self.n_workers) if self.n_workers > 1 else None
        try:
            for n in range(1, n_steps):
                nxt, n_evals = self.step(current, out=nxt, executor=executor)
                check_finite(nxt, n)
                current, nxt = nxt, current
                total_evals += n_evals

                if history is not None:
                    history[:, n] = current
                if self.verbose and (n % max(1, n_transitions // 10) == 0 or n == n_transitions):
                    print(f"  Step {n}/{n_transitions}: mass = "
                          f"{compute_total_mass(current, self.k):.6f}")
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        elapsed = time.time() - start_time
        final_mass = compute_total_mass(current, self.k)

        if self.verbose:
            print(f"DTQ done: mass {initial_mass:.6f} -> {final_mass:.6f}, "
                  f"{total_evals} kernel evaluations, {elapsed:.2f}s")

        diagnostics = Diagnostics(
            n_steps=n_steps,
            n_transitions=n_transitions,
            initial_mass=initial_mass,
            final_mass=final_mass,
            kernel_evaluations=total_evals,
            elapsed_time=elapsed
        )

        return DTQResult(
            grid=self.x,
            density=current,
            k=self.k,
            h=self.h,
            T=T,
            diagnostics=diagnostics,
            history=history,
            time_values=self.h * np.arange(1, n_steps + 1) if record_history else None,
            config={
                'init_kind': kind,
                'truncate': self.truncate,
                'n_workers': self.n_workers,
                'record_history': record_history
            }
        )
