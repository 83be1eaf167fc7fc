"""
Permutation p-value computation.

Every count is inclusive: the observed value is part of the reference set,
so a count is always >= 1 and a p-value is always > 0.

    p = #{b : T_b at least as extreme as T_obs} / B

where B counts every row of the permutation matrix, the observed grouping
included. This is the "upper_bound" formula (b + 1) / (m + 1) written in
terms of the m = B - 1 random rows.

The "exact" formula (Phipson & Smyth, 2010) refines the upper bound when
the m rows are drawn with replacement from M possible partitions:

    p = (b + 1) / (m + 1) - integral_0^{0.5 / M} F(b; m, t) dt

with F the binomial CDF. For exhaustive enumeration or draws without
replacement the upper bound is already exact and is returned unchanged.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import integrate
from scipy import stats as sp_stats

from pyflip.permutation._common import TIE_RTOL


def tie_tolerance(values: NDArray | float) -> NDArray | float:
    """Absolute tie tolerance for each value; zero for non-finite values."""
    values = np.asarray(values, dtype=np.float64)
    tol = TIE_RTOL * np.abs(values)
    return np.where(np.isfinite(tol), tol, 0.0)


def count_extreme(
    perm_stats: NDArray[np.floating[Any]],
    observed: float,
    alternative: str,
) -> int:
    """
    Count permutation values at least as extreme as the observed value.

    ``alternative`` here is a single tail: "greater", "less" or
    "absolute" (|T_b| >= |T_obs|).
    """
    gamma = tie_tolerance(observed)
    if alternative == "greater":
        return int(np.sum(perm_stats >= observed - gamma))
    if alternative == "less":
        return int(np.sum(perm_stats <= observed + gamma))
    if alternative == "absolute":
        return int(np.sum(np.abs(perm_stats) >= np.abs(observed) - gamma))
    raise ValueError(f"Unknown tail: {alternative!r}")


def phipson_smyth(count: int, B: int, n_partitions: int) -> float:
    """
    Exact p-value for B - 1 random partitions drawn with replacement.

    Args:
        count: Inclusive count (observed grouping included), >= 1.
        B: Total rows, observed grouping included.
        n_partitions: Number of distinct partitions M.
    """
    b = count - 1
    m = B - 1
    upper = count / B
    if m == 0:
        return upper
    correction, _ = integrate.quad(
        lambda t: sp_stats.binom.cdf(b, m, t),
        0.0,
        0.5 / n_partitions,
    )
    return float(upper - correction)


def _to_pvalue(
    count: int,
    B: int,
    formula: str,
    n_partitions: int,
    corrected: bool,
) -> float:
    if formula == "exact" and corrected:
        return phipson_smyth(count, B, n_partitions)
    return count / B


def pvalue_from_distribution(
    perm_stats: NDArray[np.floating[Any]],
    observed: float,
    alternative: str,
    two_tail_rule: str = "double",
    formula: str = "upper_bound",
    n_partitions: int | None = None,
    corrected: bool = False,
) -> float:
    """
    P-value of a scalar statistic against its permutation distribution.

    Args:
        perm_stats: Statistic over every partition, shape (B,), observed
            grouping included.
        observed: Statistic on the observed grouping.
        alternative: "greater", "less" or "two_tail".
        two_tail_rule: "double" gives min(1, 2 * min(p_greater, p_less));
            "absolute" compares |T_b| with |T_obs|.
        formula: "upper_bound" or "exact".
        n_partitions: Number of distinct partitions (needed for "exact").
        corrected: Whether the rows were drawn at random with replacement,
            i.e. whether the "exact" correction applies.

    Returns:
        p-value in (0, 1].
    """
    B = perm_stats.shape[0]
    if formula == "exact" and corrected and n_partitions is None:
        raise ValueError("n_partitions is required for the exact formula")

    def tail(direction: str) -> float:
        count = count_extreme(perm_stats, observed, direction)
        return _to_pvalue(count, B, formula, n_partitions, corrected)

    if alternative == "two_tail":
        if two_tail_rule == "absolute":
            return tail("absolute")
        return min(1.0, 2.0 * min(tail("greater"), tail("less")))
    return tail(alternative)


def partial_pvalues(
    perm_stats: NDArray[np.floating[Any]],
    alternative: str,
    two_tail_rule: str = "double",
) -> NDArray[np.floating[Any]]:
    """
    P-value of every row of a permutation distribution against the others.

    Entry b is the upper-bound p-value obtained by treating T_b as the
    observed value, so entry 0 is the observed p-value.

    Args:
        perm_stats: Shape (B,).
        alternative: "greater", "less" or "two_tail".
        two_tail_rule: "double" or "absolute".

    Returns:
        Array of shape (B,) with values in (0, 1].
    """
    B = perm_stats.shape[0]
    gamma = tie_tolerance(perm_stats)

    def greater(values, tol):
        ordered = np.sort(values)
        return (B - np.searchsorted(ordered, values - tol, side='left')) / B

    def less(values, tol):
        ordered = np.sort(values)
        return np.searchsorted(ordered, values + tol, side='right') / B

    if alternative == "greater":
        return greater(perm_stats, gamma)
    if alternative == "less":
        return less(perm_stats, gamma)
    if two_tail_rule == "absolute":
        return greater(np.abs(perm_stats), gamma)
    return np.minimum(
        1.0, 2.0 * np.minimum(greater(perm_stats, gamma), less(perm_stats, gamma))
    )
