"""
Tests for input validation utilities.

Validates every function in core/validation.py.
"""

import numpy as np
import pytest

from pyflip.core.exceptions import DimensionError, ValidationError
from pyflip.core.validation import (
    check_array,
    check_bounds,
    check_choice,
    check_finite,
    check_group_sizes,
    check_positive_int,
    check_probability,
)


# ═══════════════════════════════════════════════════════════════════════
# check_array / check_finite
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:
    """check_array converts to a float ndarray and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "parameters")
        assert np.issubdtype(result.dtype, np.floating)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_scalar_becomes_0d(self):
        assert check_array(0.5, "parameters").ndim == 0

    def test_object_rejected(self):
        with pytest.raises(ValidationError, match="my_var"):
            check_array([None, 1], "my_var")

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(["a", "b"], "my_var")


class TestCheckFinite:
    """check_finite rejects NaN and Inf values."""

    def test_finite_passes(self):
        check_finite(np.array([1.0, 2.0]), "X")

    def test_mixed_nan_inf(self):
        with pytest.raises(ValidationError, match="2 NaN.*1 Inf"):
            check_finite(np.array([np.nan, np.inf, np.nan]), "X")


# ═══════════════════════════════════════════════════════════════════════
# Scalar options
# ═══════════════════════════════════════════════════════════════════════


class TestCheckPositiveInt:
    """check_positive_int accepts integers >= 1 only."""

    def test_accepts_numpy_int(self):
        assert check_positive_int(np.int64(5), "B") == 5

    @pytest.mark.parametrize("value", [0, -3])
    def test_rejects_non_positive(self, value):
        with pytest.raises(ValidationError, match="B must be >= 1"):
            check_positive_int(value, "B")

    @pytest.mark.parametrize("value", [2.5, "10", True, None])
    def test_rejects_non_integers(self, value):
        with pytest.raises(ValidationError, match="positive integer"):
            check_positive_int(value, "B")


class TestCheckChoice:
    """check_choice enforces a fixed set of option strings."""

    def test_valid(self):
        assert check_choice("less", ("greater", "less"), "alternative") == "less"

    def test_invalid_lists_options(self):
        with pytest.raises(ValidationError, match="'greater', 'less'.*'two.sided'"):
            check_choice("two.sided", ("greater", "less"), "alternative")


class TestCheckGroupSizes:
    """check_group_sizes rejects empty groups."""

    def test_non_empty_passes(self):
        check_group_sizes(1, 1)

    @pytest.mark.parametrize("n1, n2", [(0, 4), (4, 0)])
    def test_empty_group_rejected(self, n1, n2):
        with pytest.raises(ValidationError, match="at least 1 observation"):
            check_group_sizes(n1, n2)


class TestCheckProbability:
    """check_probability requires a value strictly inside (0, 1)."""

    def test_valid(self):
        assert check_probability(0.05, "alpha") == 0.05

    @pytest.mark.parametrize("value", [0.0, 1.0, -0.1, 2.0])
    def test_out_of_range(self, value):
        with pytest.raises(ValidationError, match="alpha must be in"):
            check_probability(value, "alpha")

    def test_non_numeric(self):
        with pytest.raises(ValidationError, match="number"):
            check_probability("small", "alpha")


class TestCheckBounds:
    """check_bounds validates search domains."""

    def test_valid(self):
        check_bounds(np.array([-1.0, 0.0]), np.array([1.0, 2.0]))

    def test_shape_mismatch(self):
        with pytest.raises(DimensionError, match="same shape"):
            check_bounds(np.array([0.0]), np.array([1.0, 2.0]))

    def test_inverted(self):
        with pytest.raises(ValidationError, match="strictly less"):
            check_bounds(np.array([1.0]), np.array([1.0]))

    def test_infinite(self):
        with pytest.raises(ValidationError, match="non-finite"):
            check_bounds(np.array([-np.inf]), np.array([1.0]))
