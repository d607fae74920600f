"""
Test density propagation end to end.

Checks the DTQ recursion against closed-form densities, mass behaviour,
threshold truncation, determinism and error handling.
"""

import numpy as np
import pytest

from pydtq import propagate_symmetric, propagate_bounded, THRESH
from pydtq.density import compute_total_mass, gaussian_density
from pydtq.reference import make_sde, ornstein_uhlenbeck_density
from pydtq.solver import DensityPropagator, count_steps
from pydtq.utils import relative_error
from pydtq.exceptions import InvalidArgumentError, DomainError, NumericalInstabilityError


def zero(x):
    return 0.0


def one(x):
    return 1.0


class TestBrownianMotion:
    """Test pure diffusion against the exact Gaussian."""

    def test_unit_diffusion_to_T(self):
        """h=0.01, k=0.1, M=50, T=0.1 from 0 gives N(0, 0.1)."""
        result = propagate_symmetric(0.01, 0.1, 50, [0.0], 0.1, zero, one)

        assert result.grid.shape == (101,)
        assert result.density.shape == (101,)
        assert result.diagnostics.n_steps == 10
        assert result.diagnostics.n_transitions == 9

        exact = gaussian_density(result.grid, 0.0, 0.1)
        peak = 1.0 / np.sqrt(2 * np.pi * 0.1)

        assert abs(result.density[50] - peak) / peak < 1e-3, \
            f"Peak {result.density[50]:.6f} vs exact {peak:.6f}"
        assert np.max(np.abs(result.density - exact)) < 1e-3 * peak

    def test_single_step_is_closed_form(self):
        """With T = h no quadrature step runs; the output is N(x0 + μh, σ²h)."""
        x0, mu, sigma, h = 0.3, 0.5, 0.8, 0.01
        result = propagate_symmetric(
            h, 0.05, 100, [x0], h, lambda x: mu, lambda x: sigma
        )

        assert result.diagnostics.n_transitions == 0
        exact = gaussian_density(result.grid, x0 + mu * h, sigma ** 2 * h)
        assert np.allclose(result.density, exact, rtol=1e-10, atol=1e-300)

    def test_constant_drift(self):
        """Constant drift shifts the Gaussian by μT."""
        mu, T = 0.8, 0.2
        result = propagate_bounded(0.01, -3.0, 3.0, 121, 0.0, T, lambda x: mu, one)

        exact = gaussian_density(result.grid, mu * T, T)
        assert relative_error(result.density, exact) < 1e-3


class TestMass:
    """Test mass conservation and boundary leakage."""

    def test_one_step_pure_diffusion_conserves_mass(self):
        """Σ p k before and after one step agree when no mass reaches the edges."""
        x_probe = np.arange(-100, 101) * 0.05
        init = gaussian_density(x_probe, 0.0, 0.05)

        result = propagate_symmetric(0.01, 0.05, 100, init, 0.02, zero, one)

        assert result.diagnostics.n_transitions == 1
        mass_before = compute_total_mass(init, 0.05)
        mass_after = result.mass()
        assert abs(mass_after - mass_before) < 1e-6, \
            f"Mass changed: {mass_before:.10f} -> {mass_after:.10f}"

    def test_state_dependent_diffusion_conserves_mass(self):
        """Variable diffusion still conserves mass away from the edges."""
        result = propagate_bounded(
            0.01, -4.0, 4.0, 161, [0.0], 0.2, lambda x: -x, lambda x: 0.5 + 0.1 * x ** 2
        )
        assert abs(result.mass() - 1.0) < 1e-4
        assert abs(result.diagnostics.mass_loss) < 1e-4

    def test_boundary_loss(self):
        """Drift toward the upper edge loses mass; nothing renormalizes it."""
        result = propagate_bounded(
            0.01, -1.0, 1.0, 41, [0.5], 0.5, lambda x: 2.0, lambda x: 0.5
        )

        assert result.diagnostics.initial_mass > 0.99
        assert result.mass() < 1.0
        assert result.mass() < 0.5, f"Expected most mass to leave, got {result.mass():.4f}"
        assert result.diagnostics.mass_loss > 0

    def test_density_stays_non_negative(self):
        result = propagate_bounded(
            0.01, -1.0, 1.0, 41, [0.5], 0.5, lambda x: 2.0, lambda x: 0.5
        )
        assert np.all(result.density >= 0)


class TestOrnsteinUhlenbeck:
    """Test a mean-reverting SDE against its exact density."""

    def test_matches_exact_density(self):
        """DTQ tracks the OU density up to the Euler-Maruyama bias."""
        drift, diffusion = make_sde("ou", mu=0.0, sigma=1.0, theta=1.0)
        result = propagate_bounded(0.01, -4.0, 4.0, 161, [1.0], 1.0, drift, diffusion)

        exact = ornstein_uhlenbeck_density(result.grid, 1.0, 1.0, theta=1.0, mu=0.0, sigma=1.0)
        assert np.max(np.abs(result.density - exact)) < 0.02 * np.max(exact)


class TestThresholdTruncation:
    """Test that the early-termination walk only drops negligible terms."""

    def test_truncated_matches_full_sum(self):
        """Truncated and full walks differ by less than THRESH * veclen."""
        veclen = 61
        kwargs = dict(
            h=0.01, a=-3.0, b=3.0, veclen=veclen, init=[0.2], T=0.05,
            drift=lambda x: -x, diffusion=lambda x: 1.0 + 0.1 * x ** 2
        )
        truncated = propagate_bounded(truncate=True, **kwargs)
        full = propagate_bounded(truncate=False, **kwargs)

        assert np.max(np.abs(truncated.density - full.density)) < THRESH * veclen
        assert truncated.diagnostics.kernel_evaluations < full.diagnostics.kernel_evaluations / 2

    def test_full_walk_evaluates_every_pair(self):
        result = propagate_symmetric(0.01, 0.1, 10, [0.0], 0.03, zero, one, truncate=False)
        assert result.diagnostics.kernel_evaluations == 2 * 21 ** 2


class TestDeterminism:
    """Test reproducibility across calls and worker counts."""

    def test_repeat_calls_bit_identical(self):
        args = (0.01, 0.1, 50, [0.3], 0.1, lambda x: np.sin(x), lambda x: 1.0 + 0.2 * np.cos(x))
        r1 = propagate_symmetric(*args)
        r2 = propagate_symmetric(*args)

        assert np.array_equal(r1.grid, r2.grid)
        assert np.array_equal(r1.density, r2.density)

    def test_workers_bit_identical(self):
        """Row-parallel steps give the same bits as the serial path."""
        args = (0.01, -3.0, 3.0, 97, [0.0], 0.08, lambda x: -0.5 * x, lambda x: 0.8)
        serial = propagate_bounded(*args, n_workers=1)
        parallel = propagate_bounded(*args, n_workers=4)

        assert np.array_equal(serial.density, parallel.density)
        assert serial.diagnostics.kernel_evaluations == parallel.diagnostics.kernel_evaluations

    def test_more_workers_than_rows(self):
        result = propagate_symmetric(0.01, 0.1, 1, [0.0], 0.03, zero, one, n_workers=8)
        assert result.density.shape == (3,)


class TestHistory:
    """Test in-call recording of intermediate densities."""

    def test_history_columns(self):
        result = propagate_symmetric(
            0.01, 0.1, 30, [0.0], 0.05, zero, one, record_history=True
        )

        assert result.history.shape == (61, 5)
        assert np.allclose(result.time_values, [0.01, 0.02, 0.03, 0.04, 0.05])
        assert np.array_equal(result.history[:, -1], result.density)

    def test_history_off_by_default(self):
        result = propagate_symmetric(0.01, 0.1, 30, [0.0], 0.05, zero, one)
        assert result.history is None
        assert result.time_values is None


class TestStepCount:
    """Test ceil(T/h) step counting."""

    def test_exact_multiple(self):
        assert count_steps(0.1, 0.01) == 10

    def test_rounds_up(self):
        assert count_steps(1.0, 0.3) == 4
        assert count_steps(0.001, 0.01) == 1

    def test_ratio_just_above_integer_rounds_up(self):
        """0.07 / 0.01 is 7.000000000000001 in floating point, so 8 steps."""
        assert 0.07 / 0.01 > 7
        assert count_steps(0.07, 0.01) == 8

    def test_propagation_uses_ceil_step_count(self):
        result = propagate_symmetric(0.01, 0.1, 20, [0.0], 0.07, zero, one)
        assert result.diagnostics.n_steps == 8
        assert result.diagnostics.n_transitions == 7


class TestErrors:
    """Test fail-fast argument and domain checks."""

    @pytest.mark.parametrize("h, T", [(0.0, 1.0), (-0.01, 1.0), (0.01, 0.0), (0.01, np.nan)])
    def test_invalid_step_or_horizon(self, h, T):
        with pytest.raises(InvalidArgumentError):
            propagate_symmetric(h, 0.1, 10, [0.0], T, zero, one)

    def test_init_length_mismatch(self):
        with pytest.raises(InvalidArgumentError):
            propagate_bounded(0.01, 0.0, 1.0, 11, np.ones(10), 0.1, zero, one)

    def test_non_callable_coefficients(self):
        with pytest.raises(InvalidArgumentError):
            propagate_symmetric(0.01, 0.1, 10, [0.0], 0.1, 0.0, one)
        with pytest.raises(InvalidArgumentError):
            propagate_symmetric(0.01, 0.1, 10, [0.0], 0.1, zero, "sigma")

    def test_invalid_worker_count(self):
        with pytest.raises(InvalidArgumentError):
            propagate_symmetric(0.01, 0.1, 10, [0.0], 0.1, zero, one, n_workers=0)

    def test_zero_diffusion_on_grid(self):
        """Geometric Brownian motion has zero diffusion at x = 0."""
        drift, diffusion = make_sde("gbm", mu=0.1, sigma=0.3)
        init = gaussian_density(np.linspace(0.0, 2.0, 21), 1.0, 0.1)
        with pytest.raises(DomainError):
            propagate_bounded(0.01, 0.0, 2.0, 21, init, 0.05, drift, diffusion)

    def test_zero_diffusion_at_start(self):
        with pytest.raises(DomainError):
            propagate_symmetric(0.01, 0.1, 10, [0.0], 0.05, zero, lambda x: x)

    def test_non_finite_density_is_fatal(self):
        """A kernel that overflows to NaN stops the run."""
        x = np.arange(-10, 11) * 0.1
        init = gaussian_density(x, 0.0, 0.2)
        with np.errstate(all="ignore"):
            with pytest.raises(NumericalInstabilityError):
                propagate_symmetric(0.01, 0.1, 10, init, 0.02, zero, lambda s: 1e-160)

    def test_huge_drift_loses_mass_without_overflow(self):
        """Offsets too large to square give a zero kernel, not OverflowError."""
        result = propagate_symmetric(
            0.01, 0.1, 10, [0.0], 0.03, lambda x: 1e200 * x, one
        )

        assert np.all(np.isfinite(result.density))
        assert np.all(result.density >= 0)
        assert result.density[10] > 0, "Mass at x = 0 has zero drift and stays"
        assert np.all(result.density[:10] == 0)
        assert result.mass() < result.diagnostics.initial_mass

    def test_overflowing_term_is_fatal(self):
        """A kernel term beyond float range surfaces as NumericalInstabilityError."""
        init = np.full(21, 1e300)
        with pytest.raises(NumericalInstabilityError):
            propagate_symmetric(0.01, 0.1, 10, init, 0.02, zero, lambda s: 1e-150)

    def test_domain_errors_are_arithmetic_errors(self):
        """Exception types slot into the builtin hierarchy."""
        assert issubclass(InvalidArgumentError, ValueError)
        assert issubclass(DomainError, ArithmeticError)
        assert issubclass(NumericalInstabilityError, FloatingPointError)


class TestVerbose:
    """Test progress output."""

    def test_verbose_prints_summary(self, capsys):
        propagate_symmetric(0.01, 0.1, 20, [0.0], 0.05, zero, one, verbose=True)
        out = capsys.readouterr().out
        assert "21 grid points" in out
        assert "DTQ done" in out

    def test_quiet_by_default(self, capsys):
        propagate_symmetric(0.01, 0.1, 20, [0.0], 0.05, zero, one)
        assert capsys.readouterr().out == ""


class TestPropagatorDirect:
    """Test DensityPropagator on a caller-built grid."""

    def test_spacing_recovered_from_grid(self):
        x = np.linspace(-2.0, 2.0, 41)
        propagator = DensityPropagator(x, 0.01, zero, one)
        assert np.isclose(propagator.k, 0.1)

    def test_step_does_not_modify_current(self):
        x = np.linspace(-2.0, 2.0, 41)
        propagator = DensityPropagator(x, 0.01, zero, one)
        current = gaussian_density(x, 0.0, 0.1)
        snapshot = current.copy()

        nxt, n_evals = propagator.step(current)

        assert np.array_equal(current, snapshot)
        assert nxt is not current
        assert n_evals > 0

    def test_step_rejects_aliased_buffer(self):
        x = np.linspace(-2.0, 2.0, 41)
        propagator = DensityPropagator(x, 0.01, zero, one)
        current = gaussian_density(x, 0.0, 0.1)
        with pytest.raises(InvalidArgumentError):
            propagator.step(current, out=current)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
