"""
Tests for the pyflip exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PyFlipError)
    - ValidationError doubles as ValueError
    - Diagnostic attributes on StatisticEvaluationError, ConvergenceError
    - StatisticEvaluationError survives pickling (parallel workers)
"""

import pickle

import pytest

from pyflip.core.exceptions import (
    ConvergenceError,
    DimensionError,
    NumericalError,
    PyFlipError,
    StatisticEvaluationError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PyFlipError."""

    def test_validation_error_is_pyflip_error(self):
        with pytest.raises(PyFlipError):
            raise ValidationError("bad input")

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            raise ValidationError("bad input")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong shape")

    def test_statistic_error_is_pyflip_error(self):
        with pytest.raises(PyFlipError):
            raise StatisticEvaluationError("boom", permutation_index=3)

    def test_statistic_error_is_not_validation_error(self):
        err = StatisticEvaluationError("boom", permutation_index=3)
        assert not isinstance(err, ValidationError)

    def test_numerical_error_is_pyflip_error(self):
        with pytest.raises(PyFlipError):
            raise NumericalError("computation failed")

    def test_convergence_error_is_not_numerical_error(self):
        err = ConvergenceError("did not converge", iterations=10)
        assert not isinstance(err, NumericalError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestStatisticEvaluationError:
    """StatisticEvaluationError records where the statistic failed."""

    def test_attributes(self):
        err = StatisticEvaluationError("boom", permutation_index=7, indices=[0, 3])
        assert err.permutation_index == 7
        assert err.indices == [0, 3]
        assert str(err) == "boom"

    def test_indices_default_none(self):
        err = StatisticEvaluationError("boom", permutation_index=0)
        assert err.indices is None

    def test_pickle_round_trip_keeps_attributes(self):
        err = StatisticEvaluationError("boom", permutation_index=5, indices=[1, 2])
        restored = pickle.loads(pickle.dumps(err))
        assert isinstance(restored, StatisticEvaluationError)
        assert restored.permutation_index == 5
        assert restored.indices == [1, 2]
        assert str(restored) == "boom"


class TestConvergenceError:
    """ConvergenceError carries optional diagnostics."""

    def test_all_attributes(self):
        err = ConvergenceError(
            "failed", iterations=40, final_change=1e-3,
            reason="max_expansions", threshold=0.05,
        )
        assert err.iterations == 40
        assert err.final_change == 1e-3
        assert err.reason == "max_expansions"
        assert err.threshold == 0.05

    def test_defaults(self):
        err = ConvergenceError("failed", iterations=1)
        assert err.final_change is None
        assert err.reason is None
        assert err.threshold is None
