"""
Tests for PValueFunction and two_sample_pf().

Validates:
    - p = 1 at the parameter that makes the samples coincide
    - Partitions drawn once and shared by every candidate
    - Memoization
    - Scalar, grid and multi-parameter candidates
    - Null specification checks
"""

import numpy as np
import pytest

from pyflip import PValueFunction, two_sample_pf
from pyflip.core.exceptions import DimensionError, ValidationError
from pyflip.permutation.statistics import stat_mean


X = np.array([1.0, 2.0, 3.0, 4.0])
Y = X + 10.0


def shift(y, delta):
    return y - delta


def location_scale(y, theta):
    return (y - theta[0]) / theta[1]


# ═══════════════════════════════════════════════════════════════════════
# Evaluation
# ═══════════════════════════════════════════════════════════════════════


class TestEvaluation:
    """Candidates map to p-values of x vs. the transformed y."""

    def test_true_shift_gives_one(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        assert pf(10.0) == pytest.approx(1.0)

    def test_scalar_returns_float(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        assert isinstance(pf(9.0), float)

    def test_grid_returns_array(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        values = pf(np.linspace(8.0, 12.0, 5))
        assert values.shape == (5,)
        assert int(np.argmax(values)) == 2
        assert np.all((values > 0) & (values <= 1))

    def test_column_grid_accepted(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        values = pf(np.array([[9.0], [10.0]]))
        assert values.shape == (2,)

    def test_p_decreases_away_from_truth(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        assert pf(10.0) > pf(8.0) >= pf(5.0)

    def test_null_receives_float(self):
        seen = []

        def spy(y, delta):
            seen.append(delta)
            return y - delta

        pf = PValueFunction(spy, X, Y, stat_mean, B="exhaustive")
        pf(np.array([9.0]))
        assert isinstance(seen[0], float)

    def test_test_at_returns_full_result(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        result = pf.test_at(10.0)
        assert result.exhaustive
        assert result.observed_stat == pytest.approx(0.0)


# ═══════════════════════════════════════════════════════════════════════
# Shared partitions and memoization
# ═══════════════════════════════════════════════════════════════════════


class TestSharedPartitions:
    """One draw of partitions serves the whole session."""

    def test_exhaustive_session(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        assert pf.exhaustive
        assert pf.permutations.shape == (70, 4)

    def test_unseeded_session_is_consistent(self, rng):
        x = rng.normal(size=12)
        y = rng.normal(size=12) + 1.0
        pf = PValueFunction(shift, x, y, stat_mean, B=200)
        assert not pf.exhaustive
        assert pf.test_at(0.5).p_value == pf.test_at(0.5).p_value

    def test_seeded_sessions_agree(self, rng):
        x = rng.normal(size=12)
        y = rng.normal(size=12) + 1.0
        pf1 = PValueFunction(shift, x, y, stat_mean, B=200, seed=3)
        pf2 = PValueFunction(shift, x, y, stat_mean, B=200, seed=3)
        np.testing.assert_array_equal(pf1.permutations, pf2.permutations)
        grid = np.linspace(-1.0, 3.0, 9)
        np.testing.assert_array_equal(pf1(grid), pf2(grid))

    def test_memoized(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        pf(10.0)
        pf(10.0)
        pf(np.array([10.0, 11.0]))
        assert pf.n_evaluations == 2
        assert pf.evaluations[(10.0,)] == pytest.approx(1.0)

    def test_repr(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        assert repr(pf).startswith("PValueFunction(n_params=1, B=70")


# ═══════════════════════════════════════════════════════════════════════
# Multi-parameter candidates
# ═══════════════════════════════════════════════════════════════════════


class TestMultiParameter:
    """Vector parameters are passed as 1D arrays."""

    def test_single_candidate(self):
        pf = PValueFunction(location_scale, X, Y, stat_mean, B="exhaustive", n_params=2)
        assert pf([10.0, 1.0]) == pytest.approx(1.0)

    def test_grid(self):
        pf = PValueFunction(location_scale, X, Y, stat_mean, B="exhaustive", n_params=2)
        values = pf(np.array([[10.0, 1.0], [0.0, 1.0], [10.0, 2.0]]))
        assert values.shape == (3,)
        assert values[0] == pytest.approx(1.0)

    def test_as_points(self):
        pf = PValueFunction(location_scale, X, Y, stat_mean, B="exhaustive", n_params=2)
        points, single = pf.as_points([1.0, 2.0])
        assert single
        assert points.shape == (1, 2)

    def test_bad_shape(self):
        pf = PValueFunction(location_scale, X, Y, stat_mean, B="exhaustive", n_params=2)
        with pytest.raises(DimensionError, match="2-dimensional"):
            pf([1.0, 2.0, 3.0])


# ═══════════════════════════════════════════════════════════════════════
# Tracing
# ═══════════════════════════════════════════════════════════════════════


class TestTrace:
    """trace() evaluates a grid and reports its maximum."""

    def test_trace(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        trace = pf.trace(np.linspace(8.0, 12.0, 9))
        assert trace.estimate == pytest.approx(10.0)
        assert trace.max_p_value == pytest.approx(1.0)
        assert trace.parameters.shape == (9,)
        assert trace.info['n_points'] == 9
        assert "P-VALUE FUNCTION" in trace.summary()

    def test_two_sample_pf(self):
        assert two_sample_pf(10.0, shift, X, Y, stat_mean, B="exhaustive") == pytest.approx(1.0)
        values = two_sample_pf([9.0, 10.0], shift, X, Y, stat_mean, B="exhaustive")
        assert values.shape == (2,)


# ═══════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════


class TestValidation:
    """Bad null specifications and candidates are rejected."""

    def test_null_not_callable(self):
        with pytest.raises(ValidationError, match="null_specification must be callable"):
            PValueFunction(None, X, Y, stat_mean)

    def test_null_changes_size(self):
        pf = PValueFunction(lambda y, d: y[:-1] - d, X, Y, stat_mean, B="exhaustive")
        with pytest.raises(DimensionError, match="changed the size"):
            pf(1.0)

    def test_non_finite_candidate(self):
        pf = PValueFunction(shift, X, Y, stat_mean, B="exhaustive")
        with pytest.raises(ValidationError, match="NaN"):
            pf(np.nan)

    def test_invalid_test_option(self):
        with pytest.raises(ValidationError, match="alternative"):
            PValueFunction(shift, X, Y, stat_mean, alternative="up")
