"""
Permutation sampler for two-sample designs.

A partition of the pooled sample is represented by the sorted indices of
the observations assigned to the first group, so a matrix of shape
(B, n1) describes B partitions. Row 0 is always the observed grouping
``[0, 1, ..., n1 - 1]``.

Two strategies:

1. **Exhaustive enumeration**: all C(n, n1) partitions in lexicographic
   order. The identity is the first combination, so it sits in row 0
   without special handling.
2. **Random sampling**: the identity followed by B - 1 partitions drawn
   uniformly over all C(n, n1) partitions, either independently (with
   replacement, the draws may repeat each other or the identity) or as
   distinct non-identity partitions (without replacement).

All draws come from one ``np.random.Generator`` before any statistic is
evaluated, so the matrix is fully determined by the seed regardless of
how evaluation is later scheduled.
"""

from __future__ import annotations

import itertools
import math

import numpy as np
from numpy.typing import NDArray

from pyflip.core.exceptions import ValidationError
from pyflip.permutation._common import EXHAUSTIVE, MAX_EXHAUSTIVE

# Above this many partitions, ranks no longer fit in int64 and
# without-replacement sampling falls back to rejection.
_MAX_RANKABLE = 2 ** 62


def count_partitions(n: int, n1: int) -> int:
    """Number of distinct ways to choose the first group: C(n, n1)."""
    return math.comb(n, n1)


def identity_partition(n1: int) -> NDArray[np.intp]:
    """First-group indices of the observed grouping."""
    return np.arange(n1, dtype=np.intp)


def enumerate_partitions(
    n: int,
    n1: int,
    max_exhaustive: int = MAX_EXHAUSTIVE,
) -> NDArray[np.intp]:
    """
    Enumerate every partition of ``range(n)`` into groups of n1 and n - n1.

    Args:
        n: Pooled sample size.
        n1: First-group size.
        max_exhaustive: Feasibility bound on C(n, n1).

    Returns:
        Array of shape (C(n, n1), n1); row 0 is the identity.

    Raises:
        ValidationError: If C(n, n1) exceeds max_exhaustive.
    """
    total = count_partitions(n, n1)
    if total > max_exhaustive:
        raise ValidationError(
            f"exhaustive enumeration requires C({n}, {n1}) = {total} "
            f"partitions, above max_exhaustive={max_exhaustive}; "
            f"use a finite B instead"
        )
    out = np.fromiter(
        itertools.chain.from_iterable(itertools.combinations(range(n), n1)),
        dtype=np.intp,
        count=total * n1,
    )
    return out.reshape(total, n1)


def unrank_partition(rank: int, n: int, n1: int) -> NDArray[np.intp]:
    """
    Convert a lexicographic rank to its combination of ``range(n)``.

    Walks the candidate elements in order. At each element, the number of
    combinations that start with it is C(remaining - 1, k - 1): if the rank
    falls inside that block the element is taken, otherwise the block is
    skipped.

    Example for n=4, n1=2, rank=3:
        blocks starting with 0 are ranks 0..2, so skip 0 (rank -> 0);
        take 1, then take 2  ->  [1, 2]
    """
    result = np.empty(n1, dtype=np.intp)
    k = n1
    pos = 0
    for element in range(n):
        if k == 0:
            break
        block = math.comb(n - element - 1, k - 1)
        if rank < block:
            result[pos] = element
            pos += 1
            k -= 1
        else:
            rank -= block
    return result


def _draw_with_replacement(
    n: int,
    n1: int,
    size: int,
    rng: np.random.Generator,
) -> NDArray[np.intp]:
    """Draw ``size`` independent uniform partitions."""
    batch = np.tile(np.arange(n, dtype=np.intp), (size, 1))
    rng.permuted(batch, axis=1, out=batch)
    return np.sort(batch[:, :n1], axis=1)


def _draw_without_replacement(
    n: int,
    n1: int,
    size: int,
    rng: np.random.Generator,
) -> NDArray[np.intp]:
    """Draw ``size`` distinct partitions, none equal to the identity."""
    total = count_partitions(n, n1)
    if size > total - 1:
        raise ValidationError(
            f"cannot draw {size} distinct non-identity partitions: only "
            f"{total - 1} exist for n={n}, n1={n1}; use replace=True or "
            f"B='{EXHAUSTIVE}'"
        )

    if total <= _MAX_RANKABLE:
        # Identity is rank 0, so draw from [1, total).
        ranks = rng.choice(total - 1, size=size, replace=False) + 1
        return np.array(
            [unrank_partition(int(r), n, n1) for r in ranks],
            dtype=np.intp,
        ).reshape(size, n1)

    seen: set[tuple[int, ...]] = {tuple(range(n1))}
    result = np.empty((size, n1), dtype=np.intp)
    count = 0
    while count < size:
        for row in _draw_with_replacement(n, n1, size - count, rng):
            key = tuple(row.tolist())
            if key not in seen:
                seen.add(key)
                result[count] = row
                count += 1
    return result


def sample_partitions(
    n: int,
    n1: int,
    B: int,
    rng: np.random.Generator,
    replace: bool = True,
) -> NDArray[np.intp]:
    """
    Identity partition followed by B - 1 random partitions.

    Args:
        n: Pooled sample size.
        n1: First-group size.
        B: Total number of rows, identity included.
        rng: Generator all draws come from.
        replace: Draw independently (True) or as distinct non-identity
            partitions (False).

    Returns:
        Array of shape (B, n1).
    """
    partitions = np.empty((B, n1), dtype=np.intp)
    partitions[0] = identity_partition(n1)
    if B > 1:
        if replace:
            partitions[1:] = _draw_with_replacement(n, n1, B - 1, rng)
        else:
            partitions[1:] = _draw_without_replacement(n, n1, B - 1, rng)
    return partitions


def generate_partitions(
    n: int,
    n1: int,
    B: int | str,
    seed: int | None = None,
    replace: bool = True,
    max_exhaustive: int = MAX_EXHAUSTIVE,
) -> tuple[NDArray[np.intp], bool]:
    """
    Build the reference set of partitions for one test.

    Full enumeration is used when ``B == EXHAUSTIVE``, or when a numeric B
    is at least C(n, n1) and enumeration is feasible. Otherwise B random
    partitions are sampled.

    Args:
        n: Pooled sample size.
        n1: First-group size; 0 < n1 < n.
        B: Number of partitions (identity included) or ``EXHAUSTIVE``.
        seed: Seed for ``np.random.default_rng``.
        replace: See ``sample_partitions``.
        max_exhaustive: Feasibility bound for enumeration.

    Returns:
        (partitions, exhaustive) with partitions of shape (B', n1).

    Raises:
        ValidationError: If the grouping is degenerate or enumeration is
            infeasible.
    """
    if n1 < 1 or n1 >= n:
        raise ValidationError(
            f"degenerate grouping: n1={n1}, n2={n - n1}; both groups "
            f"must be non-empty"
        )

    total = count_partitions(n, n1)
    if B == EXHAUSTIVE:
        return enumerate_partitions(n, n1, max_exhaustive), True
    if B >= total and total <= max_exhaustive:
        return enumerate_partitions(n, n1, max_exhaustive), True

    rng = np.random.default_rng(seed)
    return sample_partitions(n, n1, B, rng, replace=replace), False
