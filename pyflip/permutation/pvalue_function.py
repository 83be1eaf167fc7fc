"""
P-value function tracing.

A PValueFunction maps a candidate parameter to the p-value of the
two-sample test of ``x`` against ``null_specification(y, parameter)``.
Under the true parameter the transformed ``y`` is exchangeable with ``x``.

The reference set of partitions is drawn once, when the function is
built, and reused for every candidate. The traced function therefore
changes only through the data transform, not through re-randomization,
which keeps it comparable across a grid and usable by optimizers and
root-finders. With a seed the whole session is reproducible.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyflip.core.compute.timing import Timer
from pyflip.core.exceptions import DimensionError, ValidationError
from pyflip.core.result import Result
from pyflip.core.validation import check_array, check_finite, check_positive_int
from pyflip.permutation._common import (
    DEFAULT_B,
    MAX_EXHAUSTIVE,
    PValueTraceParams,
)
from pyflip.permutation._sampler import generate_partitions
from pyflip.permutation.backends.cpu import CPUTwoSampleBackend
from pyflip.permutation.design import TwoSampleDesign
from pyflip.permutation.solution import PValueTraceSolution, TwoSampleSolution


class PValueFunction:
    """
    Seeded, memoized p-value function of a null-hypothesis parameter.

    Args:
        null_specification: fn(y, parameter) -> transformed y. The
            parameter is passed as a float when ``n_params == 1`` and as a
            1D array otherwise. The transformed sample must keep len(y).
        x: First sample.
        y: Second sample (the one transformed).
        statistic: fn(pooled, group1_indices) -> float or vector.
        B: Number of partitions or ``"exhaustive"``.
        n_params: Dimension of the parameter.
        seed: Seed for the single draw of partitions.
        **test_options: Remaining TwoSampleDesign options (alternative,
            combine, pvalue_formula, two_tail_rule, replace,
            max_exhaustive, n_jobs).

    Usage:
        pf = PValueFunction(lambda y, d: y + d, x, y, stat_mean, B=999, seed=1)
        pf(0.5)                        # one candidate -> float
        pf(np.linspace(-1, 1, 21))     # grid -> ndarray of 21 p-values
        pf.trace(np.linspace(-1, 1, 21)).estimate
    """

    def __init__(
        self,
        null_specification: Callable,
        x,
        y,
        statistic: Callable,
        B: int | str = DEFAULT_B,
        *,
        n_params: int = 1,
        seed: int | None = None,
        alternative="two_tail",
        combine: str | Callable = "tippett",
        pvalue_formula: str = "upper_bound",
        two_tail_rule: str = "double",
        replace: bool = True,
        max_exhaustive: int = MAX_EXHAUSTIVE,
        n_jobs: int | None = None,
    ):
        if not callable(null_specification):
            raise ValidationError(
                f"null_specification must be callable, got "
                f"{type(null_specification).__name__}"
            )
        self._null_specification = null_specification
        self._n_params = check_positive_int(n_params, "n_params")
        self._x = x
        self._y = y
        self._options = dict(
            alternative=alternative,
            seed=seed,
            combine=combine,
            pvalue_formula=pvalue_formula,
            two_tail_rule=two_tail_rule,
            replace=replace,
            max_exhaustive=max_exhaustive,
            n_jobs=n_jobs,
        )

        # Validates inputs once and fixes group sizes.
        template = TwoSampleDesign.for_two_sample_test(
            x, y, statistic, B, **self._options,
        )
        self._statistic = statistic
        self._n2 = template.n2
        self._partitions, self._exhaustive = generate_partitions(
            template.n, template.n1, template.B,
            seed=seed,
            replace=template.replace,
            max_exhaustive=template.max_exhaustive,
        )
        self._backend = CPUTwoSampleBackend()
        self._cache: dict[tuple[float, ...], float] = {}

    # --- Properties ---

    @property
    def n_params(self) -> int:
        return self._n_params

    @property
    def permutations(self) -> NDArray[np.intp]:
        """The partition matrix shared by every evaluation, shape (B, n1)."""
        return self._partitions

    @property
    def exhaustive(self) -> bool:
        return self._exhaustive

    @property
    def n_evaluations(self) -> int:
        """Number of distinct candidates evaluated so far."""
        return len(self._cache)

    @property
    def evaluations(self) -> dict[tuple[float, ...], float]:
        """Copy of the memoized candidate -> p-value map."""
        return dict(self._cache)

    # --- Evaluation ---

    def as_points(self, parameters: ArrayLike) -> tuple[NDArray[np.floating[Any]], bool]:
        """
        Normalize candidates to an (m, n_params) array.

        For one parameter, a scalar is one candidate and a 1D array is a
        grid. For several, a 1D array of length n_params is one candidate
        and a 2D array (m, n_params) is a grid.

        Returns:
            (points, single) where single is True for one candidate.
        """
        arr = check_array(parameters, "parameters")
        check_finite(arr, "parameters")
        p = self._n_params
        if p == 1:
            if arr.ndim == 0:
                return arr.reshape(1, 1), True
            if arr.ndim == 1:
                return arr.reshape(-1, 1), False
            if arr.ndim == 2 and arr.shape[1] == 1:
                return arr, False
        else:
            if arr.ndim == 1 and arr.shape[0] == p:
                return arr.reshape(1, p), True
            if arr.ndim == 2 and arr.shape[1] == p:
                return arr, False
        raise DimensionError(
            f"parameters: cannot interpret shape {arr.shape} as candidates "
            f"of a {p}-dimensional parameter"
        )

    def test_at(self, point: ArrayLike) -> TwoSampleSolution:
        """Full test result at one candidate."""
        point = np.asarray(point, dtype=np.float64).reshape(-1)
        value = float(point[0]) if self._n_params == 1 else point.copy()
        y_null = self._null_specification(self._y, value)
        if len(y_null) != self._n2:
            raise DimensionError(
                f"null_specification changed the size of y from {self._n2} "
                f"to {len(y_null)}"
            )
        design = TwoSampleDesign.for_two_sample_test(
            self._x, y_null, self._statistic, self._partitions.shape[0],
            partitions=self._partitions,
            partitions_exhaustive=self._exhaustive,
            **self._options,
        )
        return TwoSampleSolution(_result=self._backend.solve(design), _design=design)

    def pvalue(self, point: ArrayLike) -> float:
        """P-value at one candidate, memoized."""
        point = np.asarray(point, dtype=np.float64).reshape(-1)
        key = tuple(point.tolist())
        if key not in self._cache:
            self._cache[key] = self.test_at(point).p_value
        return self._cache[key]

    def __call__(self, parameters: ArrayLike) -> float | NDArray[np.floating[Any]]:
        """P-value at one candidate (float) or at each of several (ndarray)."""
        points, single = self.as_points(parameters)
        values = np.array([self.pvalue(pt) for pt in points], dtype=np.float64)
        return float(values[0]) if single else values

    def trace(self, grid: ArrayLike) -> PValueTraceSolution:
        """Evaluate on a grid and report the grid maximum."""
        timer = Timer()
        timer.start()
        points, _ = self.as_points(grid)
        with timer.section('evaluation'):
            values = np.array([self.pvalue(pt) for pt in points], dtype=np.float64)
        best = int(np.argmax(values))
        timer.stop()

        params = PValueTraceParams(
            parameters=points,
            p_values=values,
            estimate=points[best].copy(),
            max_p_value=float(values[best]),
        )
        return PValueTraceSolution(_result=Result(
            params=params,
            info={
                'n_points': len(values),
                'n_params': self._n_params,
                'B': self._partitions.shape[0],
                'exhaustive': self._exhaustive,
            },
            timing=timer.result(),
            backend_name='cpu_pvalue_function',
        ))

    def __repr__(self) -> str:
        return (
            f"PValueFunction(n_params={self._n_params}, "
            f"B={self._partitions.shape[0]}, exhaustive={self._exhaustive}, "
            f"n_evaluations={self.n_evaluations})"
        )
