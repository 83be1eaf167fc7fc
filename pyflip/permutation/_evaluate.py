"""
Statistic evaluation over a matrix of partitions.

The user statistic is called as ``statistic(pooled, group1_indices)`` and
must return a real number or a fixed-length vector of reals. Row 0 of the
partition matrix is the observed grouping and fixes the vector length K
that every other row has to match.

With ``n_jobs`` set, contiguous chunks of rows are evaluated by joblib
workers. joblib returns chunk results in submission order, so the merged
matrix is identical to the serial one.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray
from joblib import Parallel, delayed, effective_n_jobs

from pyflip.core.exceptions import DimensionError, StatisticEvaluationError


def _evaluate_one(
    statistic: Callable,
    pooled: Any,
    indices: NDArray[np.intp],
    index: int,
) -> NDArray[np.floating[Any]]:
    """Evaluate the statistic on one partition, wrapping any failure."""
    try:
        value = statistic(pooled, indices)
    except Exception as e:
        raise StatisticEvaluationError(
            f"statistic failed on permutation {index} "
            f"(group 1 indices {indices.tolist()}): {e}",
            permutation_index=index,
            indices=indices.copy(),
        ) from e

    try:
        out = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise StatisticEvaluationError(
            f"statistic returned a non-numeric value on permutation "
            f"{index}: {value!r}",
            permutation_index=index,
            indices=indices.copy(),
        ) from e

    if out.ndim > 1:
        raise DimensionError(
            f"statistic must return a scalar or 1D vector, got shape "
            f"{out.shape} on permutation {index}"
        )
    return np.atleast_1d(out)


def _evaluate_chunk(
    statistic: Callable,
    pooled: Any,
    partitions: NDArray[np.intp],
    offset: int,
    k: int,
) -> NDArray[np.floating[Any]]:
    """Evaluate rows ``offset .. offset + len(partitions)`` into a (rows, k) block."""
    out = np.empty((len(partitions), k), dtype=np.float64)
    for i, indices in enumerate(partitions):
        value = _evaluate_one(statistic, pooled, indices, offset + i)
        if value.shape[0] != k:
            raise DimensionError(
                f"statistic returned {value.shape[0]} values on "
                f"permutation {offset + i} but {k} on the observed grouping"
            )
        out[i] = value
    return out


def evaluate_statistic(
    statistic: Callable,
    pooled: Any,
    partitions: NDArray[np.intp],
    n_jobs: int | None = None,
) -> NDArray[np.floating[Any]]:
    """
    Evaluate the statistic on every partition.

    Args:
        statistic: fn(pooled, group1_indices) -> float or (K,) vector.
        pooled: Pooled dataset (ndarray or list), indexed by the partitions.
        partitions: First-group indices, shape (B, n1); row 0 is observed.
        n_jobs: joblib worker count; None or 1 evaluates serially.

    Returns:
        Array of shape (B, K).

    Raises:
        StatisticEvaluationError: If the statistic raises on any row.
        DimensionError: If output lengths differ between rows.
    """
    observed = _evaluate_one(statistic, pooled, partitions[0], 0)
    k = observed.shape[0]
    B = partitions.shape[0]

    out = np.empty((B, k), dtype=np.float64)
    out[0] = observed
    if B == 1:
        return out

    rest = partitions[1:]
    if n_jobs is None or n_jobs == 1:
        out[1:] = _evaluate_chunk(statistic, pooled, rest, 1, k)
        return out

    n_workers = effective_n_jobs(n_jobs)
    n_chunks = min(len(rest), 4 * n_workers)
    bounds = np.linspace(0, len(rest), n_chunks + 1).astype(int)
    blocks = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_chunk)(
            statistic, pooled, rest[lo:hi], 1 + lo, k,
        )
        for lo, hi in zip(bounds[:-1], bounds[1:])
        if hi > lo
    )
    out[1:] = np.concatenate(blocks, axis=0)
    return out
