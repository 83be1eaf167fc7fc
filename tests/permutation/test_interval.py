"""
Tests for confidence intervals from the inverted p-value function.
"""

import numpy as np
import pytest

from pyflip import two_sample_ci
from pyflip.core.exceptions import ConvergenceError, ValidationError
from pyflip.permutation._interval import build_interval
from pyflip.permutation.solution import ConfidenceIntervalSolution
from pyflip.permutation.statistics import stat_mean


class FunctionPF:
    """Scalar p-value function backed by a plain callable."""

    def __init__(self, fn):
        self.fn = fn
        self.n_evaluations = 0

    def __call__(self, t):
        self.n_evaluations += 1
        return float(self.fn(float(t)))


def gaussian(t):
    return np.exp(-t * t / 2.0)


# Crossing of exp(-t^2 / 2) with 0.05
ROOT = np.sqrt(2.0 * np.log(20.0))


# ═══════════════════════════════════════════════════════════════════════
# Bracketing and root finding
# ═══════════════════════════════════════════════════════════════════════


class TestBuildInterval:
    """build_interval brackets each side and solves pf(t) = alpha."""

    def test_symmetric_crossings(self):
        result = build_interval(FunctionPF(gaussian), 0.0, 0.05)
        assert result.params.lower == pytest.approx(-ROOT, abs=1e-5)
        assert result.params.upper == pytest.approx(ROOT, abs=1e-5)
        assert result.params.p_value_lower == pytest.approx(0.05, abs=1e-5)
        assert result.params.converged_lower
        assert result.params.converged_upper
        assert result.info['reason'] is None
        assert result.backend_name == 'cpu_confidence_interval'

    def test_off_center_estimate(self):
        result = build_interval(FunctionPF(lambda t: gaussian(t - 4.0)), 3.5, 0.1)
        root = np.sqrt(2.0 * np.log(10.0))
        assert result.params.lower == pytest.approx(4.0 - root, abs=1e-5)
        assert result.params.upper == pytest.approx(4.0 + root, abs=1e-5)

    def test_small_step_expands(self):
        result = build_interval(FunctionPF(gaussian), 0.0, 0.05, step=1e-3)
        assert result.params.upper == pytest.approx(ROOT, abs=1e-5)

    def test_step_function_bounds_inside(self):
        pf = FunctionPF(lambda t: 0.5 if abs(t) < 1.2345 else 0.01)
        result = build_interval(pf, 0.0, 0.05)
        assert result.params.lower == pytest.approx(-1.2345, abs=1e-5)
        assert result.params.upper == pytest.approx(1.2345, abs=1e-5)
        assert result.params.lower > -1.2345
        assert result.params.upper < 1.2345
        assert result.params.p_value_lower == 0.5
        assert result.params.p_value_upper == 0.5

    def test_empty_interval(self):
        with pytest.warns(RuntimeWarning, match="empty"):
            result = build_interval(FunctionPF(lambda t: 0.01), 0.0, 0.05)
        assert np.isnan(result.params.lower)
        assert np.isnan(result.params.upper)
        assert result.info['reason'] == 'empty'

    def test_no_crossing(self):
        with pytest.warns(RuntimeWarning, match="max_expansions"):
            result = build_interval(
                FunctionPF(lambda t: 0.5), 0.0, 0.05, max_expansions=5,
            )
        assert np.isnan(result.params.lower)
        assert not result.params.converged_upper
        assert len(result.warnings) == 2

    def test_one_side_fails(self):
        pf = FunctionPF(lambda t: gaussian(t) if t < 0 else 1.0)
        with pytest.warns(RuntimeWarning, match="upper confidence bound"):
            result = build_interval(pf, 0.0, 0.05, max_expansions=5)
        solution = ConfidenceIntervalSolution(_result=result)
        assert solution.converged_lower
        assert not solution.converged_upper
        assert solution.lower == pytest.approx(-ROOT, abs=1e-5)
        with pytest.raises(ConvergenceError, match="upper side"):
            solution.raise_if_failed()


# ═══════════════════════════════════════════════════════════════════════
# End to end
# ═══════════════════════════════════════════════════════════════════════


class TestTwoSampleCI:
    """two_sample_ci() on exhaustive reference sets."""

    def test_contains_true_shift(self):
        x = np.arange(6.0)
        y = x + 3.0
        ci = two_sample_ci(
            3.0, 0.05, lambda y, d: y - d, x, y, stat_mean, B="exhaustive",
        )
        assert ci.lower < 3.0 < ci.upper
        assert ci.converged
        assert ci.conf_level == pytest.approx(0.95)
        ci.raise_if_failed()

    def test_bounds_sit_at_alpha(self, rng):
        x = rng.normal(size=6)
        y = rng.normal(size=6) + 3.0
        pe = float(np.mean(y) - np.mean(x))
        ci = two_sample_ci(
            pe, 0.05, lambda y, d: y - d, x, y, stat_mean, B="exhaustive",
        )
        assert ci.lower < pe < ci.upper
        assert ci.p_value_lower == pytest.approx(0.05, abs=0.02)
        assert ci.p_value_upper == pytest.approx(0.05, abs=0.02)
        assert ci.p_value_lower >= 0.05
        assert ci.p_value_upper >= 0.05
        assert ci.conf_int.shape == (2,)
        assert "CONFIDENCE INTERVAL" in ci.summary()

    def test_wider_at_lower_alpha(self, rng):
        x = rng.normal(size=6)
        y = rng.normal(size=6) + 3.0
        pe = float(np.mean(y) - np.mean(x))
        wide = two_sample_ci(pe, 0.01, lambda y, d: y - d, x, y, stat_mean, B="exhaustive")
        narrow = two_sample_ci(pe, 0.2, lambda y, d: y - d, x, y, stat_mean, B="exhaustive")
        assert wide.lower < narrow.lower
        assert wide.upper > narrow.upper

    @pytest.mark.parametrize("alpha", [0.0, 1.0, 1.5])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(ValidationError, match="alpha"):
            two_sample_ci(0.0, alpha, lambda y, d: y - d, [1.0, 2.0], [3.0, 4.0], stat_mean)

    def test_vector_estimate_rejected(self):
        with pytest.raises(ValidationError, match="not supported"):
            two_sample_ci(
                [0.0, 1.0], 0.05, lambda y, d: y - d,
                [1.0, 2.0], [3.0, 4.0], stat_mean,
            )

    def test_negative_step(self):
        with pytest.raises(ValidationError, match="step must be > 0"):
            two_sample_ci(
                0.0, 0.05, lambda y, d: y - d, [1.0, 2.0], [3.0, 4.0],
                stat_mean, step=-1.0,
            )
