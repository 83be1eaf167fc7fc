"""
Design class for two-sample permutation tests.

TwoSampleDesign encapsulates all inputs needed by backends to perform a
test. Immutable, validated at construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray

from pyflip.core.exceptions import DimensionError, ValidationError
from pyflip.core.validation import (
    check_choice,
    check_group_sizes,
    check_positive_int,
)
from pyflip.permutation._common import (
    DEFAULT_B,
    EXHAUSTIVE,
    MAX_EXHAUSTIVE,
    VALID_ALTERNATIVES,
    VALID_COMBINERS,
    VALID_PVALUE_FORMULAS,
    VALID_TWO_TAIL_RULES,
)


def pool_samples(x, y) -> tuple[Any, int, int]:
    """
    Concatenate two samples into one pooled dataset.

    Numeric samples whose observations share a shape are stacked into one
    ndarray along axis 0 under numpy type promotion, so integer and complex
    data keep their dtype. Anything else (ragged vectors, records, callables)
    is pooled as a plain list, so the statistic can index it with
    ``[pooled[i] for i in indices]``.

    Returns:
        (pooled, n1, n2)

    Raises:
        ValidationError: If either sample is a scalar.
    """
    for name, sample in (("x", x), ("y", y)):
        if np.ndim(sample) == 0 and not isinstance(sample, (list, tuple)):
            raise ValidationError(f"{name} must be a sequence, not a scalar")

    try:
        x_arr = np.asarray(x)
        y_arr = np.asarray(y)
    except (ValueError, TypeError):
        x_arr = y_arr = None

    if (
        x_arr is not None
        and x_arr.dtype != object and y_arr.dtype != object
        and np.issubdtype(x_arr.dtype, np.number)
        and np.issubdtype(y_arr.dtype, np.number)
        and x_arr.ndim >= 1 and y_arr.ndim >= 1
        and x_arr.shape[1:] == y_arr.shape[1:]
    ):
        pooled = np.concatenate([x_arr, y_arr], axis=0)
        return pooled, x_arr.shape[0], y_arr.shape[0]

    x_list = list(x)
    y_list = list(y)
    return x_list + y_list, len(x_list), len(y_list)


def normalize_alternative(alternative) -> tuple[str, ...]:
    """Validate a single alternative or a per-component sequence of them."""
    if isinstance(alternative, str):
        alternatives = (alternative,)
    else:
        alternatives = tuple(alternative)
        if len(alternatives) == 0:
            raise ValidationError("alternative must not be empty")
    for alt in alternatives:
        check_choice(alt, VALID_ALTERNATIVES, "alternative")
    return alternatives


@dataclass(frozen=True)
class TwoSampleDesign:
    """
    Frozen design for a two-sample permutation test.

    Attributes:
        x: Group 1 sample, as supplied.
        y: Group 2 sample, as supplied.
        pooled: Pooled dataset passed to the statistic.
        n1: Size of x.
        n2: Size of y.
        statistic: fn(pooled, group1_indices) -> float or (K,) vector.
        B: Number of partitions (observed grouping included) or
            ``EXHAUSTIVE``.
        alternative: One alternative, or one per statistic component.
        seed: Random seed for reproducibility.
        combine: NPC combiner name or callable (vector statistics only).
        pvalue_formula: "upper_bound" or "exact".
        two_tail_rule: "double" or "absolute".
        replace: Sample random partitions with replacement.
        max_exhaustive: Feasibility bound on full enumeration.
        n_jobs: joblib workers for statistic evaluation; None is serial.
        partitions: Pre-generated partition matrix to reuse, or None.
        partitions_exhaustive: Whether ``partitions`` is a full enumeration.
    """
    x: Any
    y: Any
    pooled: Any
    n1: int
    n2: int
    statistic: Callable
    B: int | str
    alternative: tuple[str, ...]
    seed: int | None
    combine: str | Callable
    pvalue_formula: str
    two_tail_rule: str
    replace: bool
    max_exhaustive: int
    n_jobs: int | None
    partitions: NDArray[np.intp] | None = None
    partitions_exhaustive: bool = False

    @property
    def n(self) -> int:
        """Pooled sample size."""
        return self.n1 + self.n2

    @classmethod
    def for_two_sample_test(
        cls,
        x,
        y,
        statistic: Callable,
        B: int | str = DEFAULT_B,
        *,
        alternative="two_tail",
        seed: int | None = None,
        combine: str | Callable = "tippett",
        pvalue_formula: str = "upper_bound",
        two_tail_rule: str = "double",
        replace: bool = True,
        max_exhaustive: int = MAX_EXHAUSTIVE,
        n_jobs: int | None = None,
        partitions: NDArray[np.intp] | None = None,
        partitions_exhaustive: bool = False,
    ) -> TwoSampleDesign:
        """
        Create a two-sample test design with validation.

        Args:
            x: Group 1 data (any sequence the statistic understands).
            y: Group 2 data.
            statistic: fn(pooled, group1_indices) -> float or vector.
            B: Number of partitions including the observed grouping, or
                ``"exhaustive"``. Must be >= 1.
            alternative: "two_tail", "greater" or "less", or a sequence
                with one entry per statistic component.
            seed: Random seed.
            combine: "tippett", "fisher", "stouffer" or a callable.
            pvalue_formula: "upper_bound" or "exact".
            two_tail_rule: "double" or "absolute".
            replace: Random partitions drawn with replacement.
            max_exhaustive: Largest C(n, n1) that may be enumerated.
            n_jobs: joblib workers for statistic evaluation.
            partitions: Optional pre-generated (B, n1) partition matrix.
            partitions_exhaustive: Whether ``partitions`` enumerates every
                partition.

        Returns:
            Validated TwoSampleDesign.
        """
        pooled, n1, n2 = pool_samples(x, y)
        check_group_sizes(n1, n2)

        if not callable(statistic):
            raise ValidationError(
                f"statistic must be callable, got {type(statistic).__name__}"
            )

        if B != EXHAUSTIVE:
            B = check_positive_int(B, "B")

        alternatives = normalize_alternative(alternative)

        if not callable(combine):
            check_choice(combine, VALID_COMBINERS, "combine")
        check_choice(pvalue_formula, VALID_PVALUE_FORMULAS, "pvalue_formula")
        check_choice(two_tail_rule, VALID_TWO_TAIL_RULES, "two_tail_rule")
        max_exhaustive = check_positive_int(max_exhaustive, "max_exhaustive")
        if n_jobs is not None and (isinstance(n_jobs, bool) or n_jobs == 0):
            raise ValidationError(f"n_jobs must be a non-zero int or None, got {n_jobs!r}")

        if partitions is not None:
            partitions = np.asarray(partitions, dtype=np.intp)
            if partitions.ndim != 2 or partitions.shape[1] != n1:
                raise DimensionError(
                    f"partitions must have shape (B, {n1}), got {partitions.shape}"
                )
            if not np.array_equal(partitions[0], np.arange(n1)):
                raise ValidationError(
                    "partitions[0] must be the observed grouping "
                    f"[0, ..., {n1 - 1}]"
                )
            if partitions.min() < 0 or partitions.max() >= n1 + n2:
                raise ValidationError(
                    f"partitions contain indices outside [0, {n1 + n2})"
                )

        return cls(
            x=x,
            y=y,
            pooled=pooled,
            n1=n1,
            n2=n2,
            statistic=statistic,
            B=B,
            alternative=alternatives,
            seed=seed,
            combine=combine,
            pvalue_formula=pvalue_formula,
            two_tail_rule=two_tail_rule,
            replace=bool(replace),
            max_exhaustive=max_exhaustive,
            n_jobs=n_jobs,
            partitions=partitions,
            partitions_exhaustive=bool(partitions_exhaustive),
        )
