"""
Tests for statistic evaluation over partition matrices.
"""

import numpy as np
import pytest

from pyflip.core.exceptions import DimensionError, StatisticEvaluationError
from pyflip.permutation._evaluate import evaluate_statistic
from pyflip.permutation._sampler import enumerate_partitions, generate_partitions
from pyflip.permutation.statistics import stat_mean, stat_mean_var


def fails_off_identity(pooled, indices):
    """Raises on any grouping whose first index is not 0."""
    if indices[0] != 0:
        raise ZeroDivisionError("bad grouping")
    return 0.0


class TestEvaluateStatistic:
    """evaluate_statistic returns a (B, K) matrix in partition order."""

    def test_scalar_statistic(self):
        pooled = np.arange(6, dtype=float)
        parts = enumerate_partitions(6, 3)
        out = evaluate_statistic(stat_mean, pooled, parts)
        assert out.shape == (20, 1)
        assert out[0, 0] == pytest.approx(1.0 - 4.0)
        for b, row in enumerate(parts):
            assert out[b, 0] == pytest.approx(stat_mean(pooled, row))

    def test_vector_statistic(self, rng):
        pooled = rng.normal(size=12)
        parts, _ = generate_partitions(12, 6, 50, seed=0)
        out = evaluate_statistic(stat_mean_var, pooled, parts)
        assert out.shape == (50, 2)

    def test_single_row(self):
        parts = np.arange(3)[None, :]
        out = evaluate_statistic(stat_mean, np.arange(6.0), parts)
        assert out.shape == (1, 1)

    def test_list_data(self):
        pooled = ["a", "bb", "ccc", "dddd"]
        parts = enumerate_partitions(4, 2)
        out = evaluate_statistic(
            lambda data, idx: sum(len(data[i]) for i in idx), pooled, parts,
        )
        assert out[0, 0] == 3.0
        assert out[-1, 0] == 7.0


class TestEvaluationErrors:
    """Failures are reported with the offending permutation."""

    def test_statistic_error_carries_index(self):
        parts = enumerate_partitions(4, 2)
        with pytest.raises(StatisticEvaluationError, match="permutation 3") as exc:
            evaluate_statistic(fails_off_identity, np.arange(4.0), parts)
        assert exc.value.permutation_index == 3
        np.testing.assert_array_equal(exc.value.indices, [1, 2])
        assert isinstance(exc.value.__cause__, ZeroDivisionError)

    def test_non_numeric_output(self):
        parts = enumerate_partitions(4, 2)
        with pytest.raises(StatisticEvaluationError, match="non-numeric"):
            evaluate_statistic(lambda d, i: "large", np.arange(4.0), parts)

    def test_length_mismatch(self):
        parts = enumerate_partitions(4, 2)
        with pytest.raises(DimensionError, match="permutation 1"):
            evaluate_statistic(
                lambda d, i: np.ones(1 if i[1] == 1 else 2),
                np.arange(4.0), parts,
            )

    def test_matrix_output(self):
        parts = enumerate_partitions(4, 2)
        with pytest.raises(DimensionError, match="scalar or 1D"):
            evaluate_statistic(lambda d, i: np.ones((2, 2)), np.arange(4.0), parts)


class TestParallelEvaluation:
    """joblib workers give the same matrix as serial evaluation."""

    def test_parallel_matches_serial(self, rng):
        pooled = rng.normal(size=20)
        parts, _ = generate_partitions(20, 10, 200, seed=5)
        serial = evaluate_statistic(stat_mean, pooled, parts)
        parallel = evaluate_statistic(stat_mean, pooled, parts, n_jobs=2)
        np.testing.assert_array_equal(serial, parallel)

    def test_parallel_error_carries_index(self):
        parts = enumerate_partitions(6, 3)
        with pytest.raises(StatisticEvaluationError) as exc:
            evaluate_statistic(fails_off_identity, np.arange(6.0), parts, n_jobs=2)
        # Every row from 10 on fails; workers may report any of them.
        assert exc.value.permutation_index >= 10
        assert exc.value.indices[0] != 0
