"""
Non-parametric combination (NPC) of several permutation statistics.

Pesarin's two-stage procedure:

1. Each of the K component statistics is turned into partial p-values,
   one per partition, by ranking it against its own permutation
   distribution. This puts components on the same (0, 1] scale.
2. A combining function maps the K partial p-values of each partition to
   one combined statistic. The overall p-value is the inclusive fraction
   of partitions whose combined statistic is at least as large as the
   observed one.

Combining functions follow the convention "larger is more extreme":

    tippett   1 - min_k p_k
    fisher    -2 * sum_k log p_k
    stouffer  sum_k Phi^{-1}(1 - p_k)

A callable combiner receives the (B, K) matrix of partial p-values and
must return a length-B vector with the same convention.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import stats as sp_stats

from pyflip.core.exceptions import DimensionError, NumericalError, ValidationError
from pyflip.permutation._pvalue import partial_pvalues, pvalue_from_distribution


def combine_tippett(p: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """Tippett: driven by the single most significant component."""
    return 1.0 - np.min(p, axis=1)


def combine_fisher(p: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """Fisher: sum of log p-values."""
    return -2.0 * np.sum(np.log(p), axis=1)


def combine_stouffer(p: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """Stouffer / Liptak: sum of normal quantiles."""
    return np.sum(sp_stats.norm.isf(p), axis=1)


COMBINERS: dict[str, Callable] = {
    "tippett": combine_tippett,
    "fisher": combine_fisher,
    "stouffer": combine_stouffer,
}


def get_combiner(combine: str | Callable) -> Callable:
    """Resolve a combiner name or pass a callable through."""
    if callable(combine):
        return combine
    try:
        return COMBINERS[combine]
    except KeyError:
        raise ValidationError(
            f"combine must be one of {', '.join(map(repr, COMBINERS))} "
            f"or a callable, got {combine!r}"
        ) from None


def combine_pvalues(
    perm_stats: NDArray[np.floating[Any]],
    alternatives: Sequence[str],
    combine: str | Callable = "tippett",
    two_tail_rule: str = "double",
    formula: str = "upper_bound",
    n_partitions: int | None = None,
    corrected: bool = False,
) -> tuple[float, NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    Combined p-value of K statistics evaluated on the same partitions.

    Args:
        perm_stats: Shape (B, K); row 0 is the observed grouping.
        alternatives: One alternative per component.
        combine: Combiner name or callable.
        two_tail_rule: Rule for "two_tail" components.
        formula: p-value formula for the final (combined) stage.
        n_partitions: Number of distinct partitions (for "exact").
        corrected: Whether the "exact" correction applies.

    Returns:
        (p_value, partial, combined) where partial is the (B, K) matrix of
        partial p-values and combined the length-B combined statistic.
    """
    B, K = perm_stats.shape
    if len(alternatives) != K:
        raise DimensionError(
            f"got {len(alternatives)} alternatives for a statistic with "
            f"{K} components"
        )

    partial = np.empty((B, K), dtype=np.float64)
    for k in range(K):
        partial[:, k] = partial_pvalues(
            perm_stats[:, k], alternatives[k], two_tail_rule,
        )

    combiner = get_combiner(combine)
    combined = np.asarray(combiner(partial), dtype=np.float64)
    if combined.shape != (B,):
        raise DimensionError(
            f"combining function must return shape ({B},), got {combined.shape}"
        )
    if np.any(np.isnan(combined)):
        raise NumericalError(
            f"combining function returned {int(np.isnan(combined).sum())} NaN values"
        )

    p_value = pvalue_from_distribution(
        combined,
        combined[0],
        "greater",
        formula=formula,
        n_partitions=n_partitions,
        corrected=corrected,
    )
    return p_value, partial, combined
