"""
Illustrative two-sample test statistics.

Every statistic has the signature ``statistic(pooled, group1_indices)``:
``pooled`` is the pooled dataset built from x and y, and
``group1_indices`` the positions currently labelled as the first group.
The observed grouping is ``group1_indices == arange(n1)``.

These are examples of the calling convention, not a statistic library:
any callable with the same signature can be passed to the tests.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.distance import cdist


def second_group(indices: NDArray[np.intp], n: int) -> NDArray[np.intp]:
    """Positions of the second group given the first group's positions."""
    mask = np.ones(n, dtype=bool)
    mask[indices] = False
    return np.flatnonzero(mask)


def split(pooled, indices: NDArray[np.intp]) -> tuple[Any, Any]:
    """
    Split the pooled dataset into (group 1, group 2).

    Arrays are indexed along axis 0; lists give lists back.
    """
    other = second_group(indices, len(pooled))
    if isinstance(pooled, np.ndarray):
        return pooled[indices], pooled[other]
    return [pooled[i] for i in indices], [pooled[i] for i in other]


def stat_mean(pooled, indices) -> float:
    """Difference of means, mean(group 1) - mean(group 2)."""
    x, y = split(pooled, indices)
    return float(np.mean(x) - np.mean(y))


def stat_median(pooled, indices) -> float:
    """Difference of medians."""
    x, y = split(pooled, indices)
    return float(np.median(x) - np.median(y))


def stat_t(pooled, indices) -> float:
    """Welch t statistic for a difference in means."""
    x, y = split(pooled, indices)
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    se2 = np.var(x, ddof=1) / len(x) + np.var(y, ddof=1) / len(y)
    return float((np.mean(x) - np.mean(y)) / np.sqrt(se2))


def stat_f(pooled, indices) -> float:
    """Variance ratio var(group 1) / var(group 2)."""
    x, y = split(pooled, indices)
    return float(np.var(x, ddof=1) / np.var(y, ddof=1))


def stat_energy(pooled, indices) -> float:
    """
    Energy distance between two multivariate samples.

        2 E|X - Y| - E|X - X'| - E|Y - Y'|

    Zero when the groups have the same distribution, larger otherwise, so
    use it with ``alternative="greater"``. Rows are observations; 1D data
    are treated as one-dimensional points.
    """
    x, y = split(pooled, indices)
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
        y = y[:, None]
    between = cdist(x, y).mean()
    within_x = cdist(x, x).mean()
    within_y = cdist(y, y).mean()
    return float(2.0 * between - within_x - within_y)


def stat_mean_var(pooled, indices) -> NDArray[np.floating[Any]]:
    """
    Two-component statistic for NPC: mean difference and log variance ratio.

    Detects a shift in location, in scale, or both, once combined.
    """
    x, y = split(pooled, indices)
    return np.array([
        np.mean(x) - np.mean(y),
        np.log(np.var(x, ddof=1) / np.var(y, ddof=1)),
    ])
