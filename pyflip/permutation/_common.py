"""
Common data structures for permutation inference.

Module-level defaults and option sets, plus the parameter payloads wrapped
by Result[P] and exposed through Solution classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal, Sequence, Union

import numpy as np
from numpy.typing import NDArray


# Sentinel value of B requesting full enumeration of all C(n, n1) partitions.
EXHAUSTIVE = "exhaustive"

DEFAULT_B = 1000

# Largest number of partitions we are willing to enumerate.
MAX_EXHAUSTIVE = 1_000_000

VALID_ALTERNATIVES = ("two_tail", "greater", "less")
VALID_COMBINERS = ("tippett", "fisher", "stouffer")
VALID_PVALUE_FORMULAS = ("upper_bound", "exact")
VALID_TWO_TAIL_RULES = ("double", "absolute")

# Relative tolerance under which a permutation value counts as a tie
# with the observed value.
TIE_RTOL = 1e-14

Alternative = Literal["two_tail", "greater", "less"]
AlternativeSpec = Union[Alternative, Sequence[Alternative]]
Combiner = Union[Literal["tippett", "fisher", "stouffer"], Callable]
PValueFormula = Literal["upper_bound", "exact"]
TwoTailRule = Literal["double", "absolute"]


@dataclass(frozen=True)
class TwoSampleParams:
    """
    Parameter payload for a two-sample permutation test.

    - observed_stat: statistic(s) on the observed grouping, shape (K,)
    - perm_stats: statistic(s) over every partition, shape (B, K);
      row 0 is the observed grouping
    - p_value: overall p-value (combined across components when K > 1)
    - partial_p_values: per-component p-values of the observed grouping,
      shape (K,); None when K == 1
    - combined_stats: combined statistic per partition, shape (B,);
      None when K == 1
    """
    observed_stat: NDArray[np.floating[Any]]
    perm_stats: NDArray[np.floating[Any]]
    p_value: float
    B: int
    alternative: tuple[str, ...]
    exhaustive: bool
    n_partitions: int
    partial_p_values: NDArray[np.floating[Any]] | None = None
    combined_stats: NDArray[np.floating[Any]] | None = None


@dataclass(frozen=True)
class PValueTraceParams:
    """
    Parameter payload for a traced p-value function.

    - parameters: evaluated candidates, shape (m, n_params)
    - p_values: p-value at each candidate, shape (m,)
    - estimate: candidate with the largest p-value, shape (n_params,)
    """
    parameters: NDArray[np.floating[Any]]
    p_values: NDArray[np.floating[Any]]
    estimate: NDArray[np.floating[Any]]
    max_p_value: float


@dataclass(frozen=True)
class EstimateParams:
    """Parameter payload for a point estimate (maximizer of the p-value function)."""
    estimate: NDArray[np.floating[Any]]        # shape (n_params,)
    p_value: float
    converged: bool
    at_boundary: bool
    n_evaluations: int
    lower: NDArray[np.floating[Any]]
    upper: NDArray[np.floating[Any]]


@dataclass(frozen=True)
class IntervalParams:
    """
    Parameter payload for a confidence interval.

    A side whose crossing could not be located has a NaN bound and a
    False convergence flag.
    """
    lower: float
    upper: float
    point_estimate: float
    alpha: float
    p_value_estimate: float
    p_value_lower: float
    p_value_upper: float
    converged_lower: bool
    converged_upper: bool
